"""
Service wiring.

One container is built per application; it owns every stateful service so
nothing is held in module-level singletons.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.logging import get_logger
from thundercloud.services.background_scheduler_service import BackgroundSchedulerService
from thundercloud.services.cache_store import CacheStore, FileCacheStore, MemoryCacheStore
from thundercloud.services.directional_aggregator import DirectionalAggregator
from thundercloud.services.notification_service import FCMPushChannel, NotificationDispatcher, PushChannel
from thundercloud.services.observer_store import FileObserverStore, MemoryObserverStore, ObserverStore
from thundercloud.services.open_meteo_service import OpenMeteoService
from thundercloud.services.thunder_cloud_analyzer import ThunderCloudAnalyzer
from thundercloud.services.thunder_monitoring_service import ThunderMonitoringService
from thundercloud.services.weather_cache import WeatherCache

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    config: Settings
    fetcher: OpenMeteoService
    cache: WeatherCache
    observer_store: ObserverStore
    dispatcher: NotificationDispatcher
    monitoring_service: ThunderMonitoringService
    scheduler: BackgroundSchedulerService


def _build_cache_store(config: Settings) -> CacheStore:
    if config.cache_backend == "file":
        return FileCacheStore(config.cache_dir)
    if config.cache_backend != "memory":
        raise ValueError(f"Unknown cache backend: {config.cache_backend}")
    return MemoryCacheStore()


def _build_observer_store(config: Settings) -> ObserverStore:
    if config.observer_store_backend == "file":
        return FileObserverStore(config.observer_store_path)
    if config.observer_store_backend != "memory":
        raise ValueError(f"Unknown observer store backend: {config.observer_store_backend}")
    return MemoryObserverStore()


def build_container(
    config: Optional[Settings] = None,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None,
    push_channel: Optional[PushChannel] = None
) -> ServiceContainer:
    """
    Build every service for one application instance.

    Args:
        config: Settings (defaults to the environment-backed settings)
        provider_transport: Optional httpx transport for Open-Meteo calls
        push_channel: Optional push channel replacing FCM
    """
    config = config or default_settings

    fetcher = OpenMeteoService(config=config, transport=provider_transport)
    cache = WeatherCache(store=_build_cache_store(config), config=config)
    observer_store = _build_observer_store(config)
    dispatcher = NotificationDispatcher(channel=push_channel or FCMPushChannel(config), config=config)

    monitoring_service = ThunderMonitoringService(
        fetcher=fetcher,
        cache=cache,
        analyzer=ThunderCloudAnalyzer(),
        aggregator=DirectionalAggregator(),
        dispatcher=dispatcher,
        observer_store=observer_store,
        config=config,
    )

    logger.info(f"Services built (cache: {config.cache_backend}, observers: {config.observer_store_backend})")
    return ServiceContainer(
        config=config,
        fetcher=fetcher,
        cache=cache,
        observer_store=observer_store,
        dispatcher=dispatcher,
        monitoring_service=monitoring_service,
        scheduler=BackgroundSchedulerService(monitoring_service, config),
    )
