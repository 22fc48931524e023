#!/usr/bin/env python3
"""
Setup Verification Script

Validates configuration, the crisis lexicon and storage before running the
application. Run this after setting up your .env file.

Usage:
    python scripts/verify_setup.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()


def print_header(title: str) -> None:
    """Print section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print(f"{'='*60}")


def print_result(name: str, success: bool, message: str = "") -> None:
    """Print check result."""
    status = "[PASS]" if success else "[FAIL]"
    color = "\033[92m" if success else "\033[91m"
    reset = "\033[0m"
    msg = f" - {message}" if message else ""
    print(f"  {color}{status}{reset} {name}{msg}")


def check_env_file() -> bool:
    """Check if .env file exists. Optional: defaults work without one."""
    env_path = project_root / ".env"
    exists = env_path.exists()
    print_result(".env file", True, "Found" if exists else "Not found, using defaults")
    return exists


def check_settings() -> None:
    """Print effective settings (no secrets are configured here)."""
    from crisis_engine.config import get_settings

    config = get_settings()
    values = [
        ("APP_ENV", config.app_env),
        ("STORAGE_BACKEND", config.storage_backend),
        ("REDIS_URL", config.redis_url),
        ("REDIS_KEY_PREFIX", config.redis_key_prefix),
        ("CRISIS_LEXICON_PATH", config.crisis_lexicon_path or "(packaged default)"),
        ("CRISIS_EVENT_LOG_LIMIT", config.crisis_event_log_limit),
        ("EMERGENCY_ACTION_LOG_LIMIT", config.emergency_action_log_limit),
    ]
    for var, value in values:
        print_result(var, True, f"{value}")


def check_lexicon() -> bool:
    """Verify the crisis lexicon loads and validates."""
    from crisis_engine.config import get_settings
    from crisis_engine.safety.lexicon import LexiconError, load_lexicon

    path = get_settings().crisis_lexicon_path
    if path and not Path(path).exists():
        print_result("Crisis lexicon", False, f"Override not found: {path} (default will be used)")
        return False

    try:
        lexicon = load_lexicon(path)
    except LexiconError as e:
        print_result("Crisis lexicon", False, str(e)[:80])
        return False

    print_result(
        "Crisis lexicon",
        True,
        f"version={lexicon.version}, phrases={lexicon.phrase_count}, "
        f"combinations={len(lexicon.combinations)}",
    )
    return True


def check_analysis() -> bool:
    """Smoke-test the analyzer on fixed phrases."""
    from crisis_engine.safety.models import RiskTier
    from crisis_engine.safety.risk_analyzer import RiskAnalyzer

    analyzer = RiskAnalyzer()
    cases = [
        ("I want to end my life tonight", RiskTier.CRITICAL),
        ("I had a good therapy session today", RiskTier.NONE),
    ]

    ok = True
    for text, expected in cases:
        tier = analyzer.analyze(text).tier
        passed = tier == expected
        ok = ok and passed
        print_result(f"Analyze '{text}'", passed, f"tier={tier.value}, expected={expected.value}")
    return ok


async def check_redis() -> bool:
    """Verify Redis connection."""
    try:
        from crisis_engine.infra.redis import RedisClient, check_redis_health
        healthy = await check_redis_health()
        await RedisClient.close()

        if healthy:
            print_result("Redis", True, "Connection successful")
        else:
            print_result("Redis", False, "Connection failed (will use in-memory fallback)")
        return healthy

    except Exception as e:
        print_result("Redis", False, str(e)[:50])
        return False


def check_dependencies() -> bool:
    """Check if required Python packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic",
        "pydantic_settings",
        "redis",
        "dotenv",
    ]

    missing = []
    for package in required_packages:
        try:
            __import__(package)
        except ImportError:
            missing.append(package)

    if missing:
        print_result("Python packages", False, f"Missing: {', '.join(missing)}")
        return False
    else:
        print_result("Python packages", True, "All required packages installed")
        return True


async def main():
    """Run all verification checks."""
    print("\n" + "="*60)
    print(" Crisis Engine - Setup Verification")
    print("="*60)

    critical_failed = False
    warnings = False

    print_header("Environment File")
    check_env_file()

    print_header("Python Dependencies")
    if not check_dependencies():
        # Nothing below can be imported without them
        print()
        return 1

    print_header("Settings")
    check_settings()

    print_header("Crisis Lexicon")
    if not check_lexicon():
        warnings = True
    if not check_analysis():
        critical_failed = True

    print_header("Storage")
    from crisis_engine.config import get_settings
    if get_settings().storage_backend == "memory":
        print_result("Storage", True, "In-memory (data is not persisted)")
    elif not await check_redis():
        warnings = True  # Redis failure is non-critical (graceful degradation)

    print_header("Summary")

    if critical_failed:
        print("\n  \033[91mCRITICAL: Crisis analysis is not behaving as expected.\033[0m")
        print("  Check CRISIS_LEXICON_PATH and the packaged lexicon before running.")
        print()
        return 1
    elif warnings:
        print("\n  \033[93mWARNING: Some optional checks failed.\033[0m")
        print("  The application will run with limited functionality.")
        print()
        return 0
    else:
        print("\n  \033[92mAll checks passed!\033[0m")
        print("  You can start the application with:")
        print("    uvicorn crisis_engine.main:app --reload")
        print()
        return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
