from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_auth_service(container: ApplicationContainer = Depends(get_container)):
    return container.auth_service


def get_admin_service(container: ApplicationContainer = Depends(get_container)):
    return container.admin_service


def get_privilege_service(container: ApplicationContainer = Depends(get_container)):
    return container.privilege_service


def get_token_service(container: ApplicationContainer = Depends(get_container)):
    return container.token_service


def get_notification_service(container: ApplicationContainer = Depends(get_container)):
    return container.notification_service


def get_persistence_gateway(container: ApplicationContainer = Depends(get_container)):
    return container.persistence
