"""Provider connectivity check.

Sends a one-line greeting through a configured provider to confirm the
key, URL and model are accepted, and saves the outcome next to the other
data files.

Usage: signal-brain-check [--provider deepseek]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

from signal_brain.orchestrator.providers import ProviderRegistry
from signal_brain.shell.config import Config, load_config
from signal_brain.shell.errors import SignalBrainError
from signal_brain.storage.json_store import JsonFileStore
from signal_brain.utils.logging import setup_logging

log = structlog.get_logger()

CHECK_SYSTEM = "You are a helpful assistant."
CHECK_PROMPT = "你好"
RESULT_FILE = "provider_check_result.json"


async def check_provider(registry: ProviderRegistry, name: str | None = None) -> dict[str, Any]:
    """Run one round trip. Never raises for provider or config failures."""
    name = name or registry.default_name
    outcome: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "provider": name,
    }
    log.info("provider_check.started", provider=name)
    try:
        reply = await registry.get(name).complete(CHECK_SYSTEM, CHECK_PROMPT)
    except SignalBrainError as e:
        outcome.update({
            "success": False,
            "error": str(e),
            "status": getattr(e, "status", None),
            "details": getattr(e, "body", None),
        })
        log.error("provider_check.failed", provider=name, error=str(e))
        return outcome

    outcome.update({"success": True, "reply": reply})
    log.info("provider_check.passed", provider=name, chars=len(reply))
    return outcome


async def run_check(config: Config, provider: str | None = None) -> dict[str, Any]:
    registry = ProviderRegistry(config.ai)
    try:
        outcome = await check_provider(registry, provider)
    finally:
        await registry.close()

    store = JsonFileStore(f"{config.storage.data_dir}/{RESULT_FILE}")
    store.save(outcome)
    log.info("provider_check.saved", path=str(store.path))
    return outcome


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check AI provider connectivity")
    parser.add_argument("--provider", help="provider name (default: configured default)")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config.log_level, command="provider-check")
    outcome = asyncio.run(run_check(config, args.provider))
    return 0 if outcome["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
