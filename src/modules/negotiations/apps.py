from django.apps import AppConfig


class NegotiationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.negotiations"
    label = "negotiations"

    def ready(self) -> None:
        from modules.negotiations.events import (
            NegotiationAccepted,
            NegotiationClosed,
            NegotiationCompleted,
            NegotiationOpened,
            OfferCountered,
        )
        from modules.negotiations.handlers import (
            negotiation_accepted_handler,
            negotiation_closed_handler,
            negotiation_completed_handler,
            negotiation_opened_handler,
            offer_countered_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(NegotiationOpened, negotiation_opened_handler)
        event_bus.subscribe(OfferCountered, offer_countered_handler)
        event_bus.subscribe(NegotiationAccepted, negotiation_accepted_handler)
        event_bus.subscribe(NegotiationClosed, negotiation_closed_handler)
        event_bus.subscribe(NegotiationCompleted, negotiation_completed_handler)
