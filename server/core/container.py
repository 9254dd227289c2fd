"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from services.dataset import DatasetService
from services.dns_resolver import DNSResolver
from services.warp import WarpService
from services.xray.generator import XrayConfigService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    settings = providers.Singleton(
        Settings,
    )

    database = providers.Singleton(
        Database,
        settings=settings
    )

    # External collaborators
    dns_resolver = providers.Singleton(
        DNSResolver,
        settings=settings
    )

    warp_service = providers.Singleton(
        WarpService,
        settings=settings
    )

    dataset_service = providers.Singleton(
        DatasetService,
        database=database,
        resolver=dns_resolver,
        warp_service=warp_service
    )

    # One generator per request
    xray_service = providers.Factory(
        XrayConfigService,
        settings=settings,
        resolver=dns_resolver,
        dataset=dataset_service
    )


# Global container instance
container = Container()
