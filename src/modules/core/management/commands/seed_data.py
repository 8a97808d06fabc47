from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.customers.models import Customer, CustomerType
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order
from modules.orders.services import build_order_service
from modules.products.models import Product
from modules.subscriptions.dtos import CreateSubscriptionDTO, CreateSubscriptionItemDTO
from modules.subscriptions.constants import Frequency
from modules.subscriptions.services import build_subscription_service
from modules.system_settings.constants import DEFAULT_SETTINGS
from modules.system_settings.models import SystemSetting


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        settings_created = self._seed_settings()
        customers = self._seed_customers()
        products = self._seed_products()
        orders_created = self._seed_orders(customers, products)
        subscriptions_created = self._seed_subscriptions(customers, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"settings={settings_created}, "
                f"customers={len(customers)}, "
                f"products={len(products)}, "
                f"orders={orders_created}, "
                f"subscriptions={subscriptions_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", email="admin@example.com", password="admin123")
            created += 1
        if not User.objects.filter(username="operador").exists():
            User.objects.create_user(
                "operador", email="operador@example.com", password="operador123", is_staff=True
            )
            created += 1
        return created

    def _seed_settings(self) -> int:
        created = 0
        for key, (value, description) in DEFAULT_SETTINGS.items():
            _, was_created = SystemSetting.objects.get_or_create(
                key=key, defaults={"value": value, "description": description}
            )
            created += int(was_created)
        return created

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        seed_customers = [
            ("Ana Souza", CustomerType.PF, "39053344705", "ana@example.com", "Campinas"),
            ("Carla Mendes", CustomerType.PF, "52998224725", "carla@example.com", "Valinhos"),
            ("Daniel Costa", CustomerType.PF, "11144477735", "daniel@example.com", "Campinas"),
            ("Restaurante Verde Ltda", CustomerType.PJ, "11222333000181", "compras@verde.example.com", "Campinas"),
            ("Mercado Boa Folha ME", CustomerType.PJ, "11444777000161", "pedidos@boafolha.example.com", "Sumaré"),
        ]
        customers: list[Customer] = []
        for name, customer_type, document, email, city in seed_customers:
            customer, _ = Customer.objects.get_or_create(
                document=document,
                defaults={
                    "name": name,
                    "customer_type": customer_type,
                    "email": email,
                    "street": "Rua das Hortaliças",
                    "number": str(random.randint(10, 999)),
                    "neighborhood": "Centro",
                    "city": city,
                    "state": "SP",
                    "zip_code": "13010-000",
                },
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        catalog = [
            ("ALF-CRESPA", "Alface Crespa", "un", Decimal("4.50"), Decimal("3.80")),
            ("ALF-AMERICANA", "Alface Americana", "un", Decimal("5.00"), Decimal("4.20")),
            ("RUCULA", "Rúcula", "maço", Decimal("4.00"), Decimal("3.40")),
            ("AGRIAO", "Agrião", "maço", Decimal("4.20"), Decimal("3.50")),
            ("MANJERICAO", "Manjericão", "maço", Decimal("3.50"), Decimal("2.90")),
            ("CEBOLINHA", "Cebolinha", "maço", Decimal("2.80"), Decimal("2.30")),
            ("MIX-FOLHAS", "Mix de Folhas 200g", "pct", Decimal("9.90"), Decimal("8.40")),
            ("MICROVERDES", "Microverdes 100g", "pct", Decimal("12.00"), Decimal("10.00")),
        ]
        products: list[Product] = []
        for code, name, unit, price_pf, price_pj in catalog:
            product, _ = Product.objects.get_or_create(
                code=code,
                defaults={
                    "name": name,
                    "unit": unit,
                    "price_pf_single": price_pf,
                    "price_pj_single": price_pj,
                    "price_pf_subscription": (price_pf * Decimal("0.9")).quantize(Decimal("0.01")),
                    "price_pj_subscription": (price_pj * Decimal("0.9")).quantize(Decimal("0.01")),
                    "stock_quantity": random.randint(200, 500),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, customers: list[Customer], products: list[Product]) -> int:
        self.stdout.write("Creating orders...")
        service = build_order_service()
        created = 0
        for i in range(20):
            key = f"seed-order-{i + 1}"
            if Order.objects.filter(idempotency_key=key).exists():
                continue
            customer = random.choice(customers)
            picked = random.sample(products, k=random.randint(1, 4))
            order = service.create_order(
                CreateOrderDTO(
                    customer_id=customer.id,
                    items=[
                        CreateOrderItemDTO(product_id=product.id, quantity=random.randint(1, 5))
                        for product in picked
                    ],
                    notes=f"Seed order {i + 1}",
                    idempotency_key=key,
                )
            )
            if random.random() < 0.6:
                service.confirm_payment(order.id)
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    def _seed_subscriptions(self, customers: list[Customer], products: list[Product]) -> int:
        self.stdout.write("Creating subscriptions...")
        if Customer.objects.filter(subscriptions__isnull=False).exists():
            self.stdout.write(self.style.WARNING("Skipping subscriptions (already seeded)."))
            return 0

        service = build_subscription_service()
        created = 0
        for customer in customers:
            subscription = service.create_subscription(
                CreateSubscriptionDTO(
                    customer_id=customer.id,
                    items=[
                        CreateSubscriptionItemDTO(product_id=product.id, quantity=random.randint(1, 3))
                        for product in random.sample(products, k=2)
                    ],
                    frequency=random.choice(list(Frequency)),
                    delivery_weekday=random.randint(0, 4),
                )
            )
            if customer.customer_type == CustomerType.PJ:
                service.activate(subscription.id)
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating subscriptions... Done!"))
        return created
