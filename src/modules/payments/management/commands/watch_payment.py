from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from modules.payments.constants import PaymentTarget
from modules.payments.exceptions import PaymentTargetNotFound
from modules.payments.reconciliation import ReconcilerState
from modules.payments.services import build_payment_service
from modules.payments.tasks import reconciler_for


class Command(BaseCommand):
    help = "Watch the payment of an order or subscription until it settles."

    def add_arguments(self, parser):
        parser.add_argument("type", choices=[target.value for target in PaymentTarget])
        parser.add_argument("id")
        parser.add_argument("--interval", type=float, default=None)
        parser.add_argument(
            "--max-polls",
            type=int,
            default=0,
            help="Stop after this many checks (0 = until settled).",
        )
        parser.add_argument(
            "--no-reissue",
            action="store_true",
            help="Do not re-issue the charge when it expires.",
        )

    def handle(self, *args, **options):
        target = PaymentTarget(options["type"])
        service = build_payment_service()
        try:
            entity = service.get_target(target, options["id"])
        except PaymentTargetNotFound as exc:
            raise CommandError(str(exc)) from exc

        reconciler = reconciler_for(
            service,
            target,
            str(entity.id),
            entity.payment_method,
            auto_reissue=not options["no_reissue"],
            on_confirmed=lambda ref: self.stdout.write(self.style.SUCCESS(f"Payment confirmed: {ref}")),
            on_reissued=lambda ref, result: self.stdout.write(
                self.style.WARNING(
                    f"Charge expired and was re-issued: {result.payment_url or result.pix_payload}"
                )
            ),
            on_error=lambda ref, exc: self.stderr.write(f"Re-issue failed: {exc}"),
        )
        if options["interval"] is not None:
            reconciler.interval = options["interval"]

        polls = 0
        max_polls = options["max_polls"]

        def should_continue() -> bool:
            nonlocal polls
            if max_polls and polls >= max_polls:
                return False
            polls += 1
            return True

        self.stdout.write(f"Watching {target} {entity.id}...")
        try:
            state = reconciler.run(should_continue)
        except KeyboardInterrupt:
            reconciler.close()
            state = ReconcilerState.CLOSED

        self.stdout.write(f"Finished in state '{state}' after {polls} check(s).")
