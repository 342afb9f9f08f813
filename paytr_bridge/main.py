from fastapi import FastAPI

from paytr_bridge.api.routes.health import router as health_router
from paytr_bridge.api.routes.paytr_callback import router as paytr_router
from paytr_bridge.core.config import Settings, settings as default_settings
from paytr_bridge.core.logging import setup_logging
from paytr_bridge.payments.correlation import CorrelationStore
from paytr_bridge.payments.paytr import PaytrVerifier
from paytr_bridge.payments.reconciliation import ReconciliationResolver
from paytr_bridge.services.order_notifier import OrderNotifier


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level)
    application = FastAPI(title="PayTR Callback Bridge")

    store = CorrelationStore(settings.correlation_ttl_seconds)
    application.state.settings = settings
    application.state.correlation_store = store
    application.state.verifier = PaytrVerifier(settings)
    application.state.resolver = ReconciliationResolver(store, settings)
    application.state.notifier = OrderNotifier(settings, store)

    application.include_router(health_router)
    application.include_router(paytr_router)
    return application


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port, log_config=None)


if __name__ == "__main__":
    run()
