"""Well-known system setting keys and their defaults."""

DELIVERY_CUTOFF_TIME = "delivery_cutoff_time"
HOLIDAYS = "holidays"
ACTIVE_ENVIRONMENT = "active_environment"

ENVIRONMENT_PRODUCTION = "production"
ENVIRONMENT_SANDBOX = "sandbox"

DEFAULT_SETTINGS: dict[str, tuple[object, str]] = {
    DELIVERY_CUTOFF_TIME: ("12:00", "Horário limite para entrega no mesmo dia (HH:MM)"),
    HOLIDAYS: ([], "Feriados sem entrega (lista de datas YYYY-MM-DD)"),
    ACTIVE_ENVIRONMENT: (ENVIRONMENT_SANDBOX, "Ambiente ativo dos provedores de pagamento"),
}

# Values never echoed back by the API
MASKED_KEYS: frozenset[str] = frozenset({"pix_client_secret", "card_secret_key"})
