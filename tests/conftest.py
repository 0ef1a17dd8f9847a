"""Root test configuration."""

import asyncio
import logging

import pytest
import structlog
from deploychain.provisioning.base import ProvisionCall


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class ScriptedClient:
    """Provisioning client double with per-descriptor identities, failures and delays."""

    def __init__(self, identities=None, failures=None, delays=None, on_call=None):
        self.identities = identities or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.on_call = on_call
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def called(self):
        return [call.descriptor.kind for call in self.calls]

    async def provision(self, descriptor, args, *, idempotency_key=None):
        kind = descriptor.kind
        self.calls.append(ProvisionCall(descriptor, tuple(args), idempotency_key))
        self.events.append(("start", kind))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_call is not None:
                self.on_call(kind)
            delay = self.delays.get(kind)
            if delay:
                await asyncio.sleep(delay)
            if kind in self.failures:
                raise self.failures[kind]
            return self.identities.get(kind, f"0x{kind}")
        finally:
            self.in_flight -= 1
            self.events.append(("end", kind))


@pytest.fixture
def make_client():
    """Factory for scripted provisioning clients."""
    return ScriptedClient


@pytest.fixture
def migration_plan_yaml(tmp_path):
    """Plan file modelled on a six-component fund platform migration."""
    plan_file = tmp_path / "migration.yaml"
    plan_file.write_text("""
name: smartfund-migration
description: Fund platform core contracts
constants:
  PARASWAP_NETWORK_ADDRESS: "0x1111"
  PARASWAP_PRICE_ADDRESS: "0x2222"
  BANCOR_REGISTRY: "0x3333"
  BANCOR_NETWORK_ADDRESS: "0x4444"
  BANCOR_PATH_FINDER_ADDRESS: "0x5555"
  PRICE_FEED_ADDRESS: "0x6666"
  PLATFORM_FEE: 1000
steps:
  - name: ParaswapParams
  - name: GetRatioForBancorAssets
    args:
      - {const: BANCOR_NETWORK_ADDRESS}
      - {const: BANCOR_PATH_FINDER_ADDRESS}
  - name: PoolPortal
    args:
      - {const: BANCOR_REGISTRY}
      - {ref: GetRatioForBancorAssets}
  - name: ExchangePortal
    args:
      - {const: PARASWAP_NETWORK_ADDRESS}
      - {const: PRICE_FEED_ADDRESS}
      - {ref: ParaswapParams}
      - {ref: PoolPortal}
  - name: PermittedExchanges
    args:
      - {ref: ExchangePortal}
  - name: SmartFundRegistry
    args:
      - {const: PLATFORM_FEE}
      - {ref: ExchangePortal}
      - {ref: PermittedExchanges}
""")
    return plan_file
