# src/carriers/client_factory.py — v1
"""Factory: instantiate carrier integrations from CarrierConfig.kind.

Called by the engine once per run for the selected carrier accounts.
"""

from __future__ import annotations

import importlib
import logging

from rateshop.carriers.base_carrier import BaseCarrierClient
from rateshop.carriers.models import CarrierConfig
from rateshop.config.settings import Settings

logger = logging.getLogger(__name__)

# Registry of integration kind → client class path (lazy import).
_KIND_REGISTRY: dict[str, str] = {
    "api": "rateshop.carriers.http_carrier.HttpCarrierClient",
    "rate_card": "rateshop.carriers.rate_card.RateCardCarrier",
}


class UnsupportedCarrierKindError(ValueError):
    """Raised when a carrier kind is not registered."""


def create_carrier_client(
    config: CarrierConfig,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseCarrierClient:
    """Instantiate the integration for one carrier account.

    Args:
        config: Carrier account configuration.
        settings: Application settings (HTTP timeout).
        **kwargs: Additional integration-specific arguments.

    Raises:
        UnsupportedCarrierKindError: If config.kind is not registered.
    """
    if config.kind not in _KIND_REGISTRY:
        raise UnsupportedCarrierKindError(
            f"Unsupported carrier kind: {config.kind!r}. "
            f"Available: {', '.join(sorted(_KIND_REGISTRY))}"
        )

    client_cls = _import_class(_KIND_REGISTRY[config.kind])

    init_kwargs = dict(kwargs)
    if settings is not None and config.kind == "api":
        init_kwargs.setdefault("timeout_s", settings.carrier_http_timeout_s)

    logger.debug(
        "Creating carrier client: id=%s, type=%s, kind=%s",
        config.id, config.carrier_type, config.kind,
    )
    return client_cls(config, **init_kwargs)


def create_carrier_clients(
    configs: list[CarrierConfig],
    settings: Settings | None = None,
) -> list[BaseCarrierClient]:
    """Clients for every usable config.

    Inactive accounts are skipped. A misconfigured account (unknown kind,
    missing endpoint) is logged and skipped so the remaining accounts still
    run; the engine fails the run only when none is left.
    """
    clients: list[BaseCarrierClient] = []
    for config in configs:
        if not config.is_active:
            logger.info("Skipping inactive carrier account %s", config.id)
            continue
        try:
            clients.append(create_carrier_client(config, settings))
        except (ValueError, ImportError, AttributeError) as e:
            logger.warning("Skipping misconfigured carrier account %s: %s", config.id, e)
    return clients


def register_carrier_kind(name: str, class_path: str) -> None:
    """Register a custom carrier integration.

    Args:
        name: Value of CarrierConfig.kind that selects it.
        class_path: Fully qualified class path implementing BaseCarrierClient.
    """
    _KIND_REGISTRY[name] = class_path
    logger.info("Registered carrier kind: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
