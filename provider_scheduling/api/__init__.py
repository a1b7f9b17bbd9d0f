from provider_scheduling.api.app import build_service, create_app

__all__ = ["create_app", "build_service"]
