#!/usr/bin/env python3
"""
List Gemini Models

Lists the model names available to a configured Gemini API key, to help
pick a value for GEMINI_API_URL.

This script:
1. Loads settings (and the key pool) the same way the service does
2. Calls GET <base>/models with the selected key
3. Prints each model name, optionally only those supporting generateContent

Usage:
    python scripts/list_models.py                      # All models, first key
    python scripts/list_models.py --generate-only      # generateContent models
    python scripts/list_models.py --api-version v1     # Use the v1 API
    python scripts/list_models.py --key-index 2        # Use the third key
"""

import argparse
import sys
from pathlib import Path

import httpx

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from interview_coach.config import get_settings


def models_endpoint(gemini_api_url: str, api_version: str | None = None) -> str:
    """
    Derive the models listing URL from a generateContent endpoint.

    "https://host/v1beta/models/gemini-2.0-flash:generateContent"
    becomes "https://host/v1beta/models".
    """
    base, sep, _ = gemini_api_url.partition("/models/")
    if not sep:
        base = gemini_api_url.rsplit("/", 1)[0]
    if api_version:
        base = base.rsplit("/", 1)[0] + f"/{api_version}"
    return f"{base}/models"


def fetch_models(url: str, api_key: str, timeout: float) -> list[dict]:
    """Fetch every page of the models listing."""
    models: list[dict] = []
    params: dict[str, str] = {}
    with httpx.Client(timeout=timeout, headers={"x-goog-api-key": api_key}) as client:
        while True:
            response = client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
            models.extend(data.get("models", []))
            token = data.get("nextPageToken")
            if not token:
                return models
            params["pageToken"] = token


def main():
    """Main entry point for the model lister."""

    parser = argparse.ArgumentParser(
        description="List Gemini models available to a configured API key",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/list_models.py                     All models, first key
  python scripts/list_models.py --generate-only     Only generateContent models
  python scripts/list_models.py --api-version v1    Query the v1 API
        """
    )

    parser.add_argument(
        "--key-index",
        type=int,
        default=0,
        help="Index of the key in the general pool (default: 0)"
    )
    parser.add_argument(
        "--api-version",
        choices=["v1", "v1beta"],
        help="API version to query (default: taken from GEMINI_API_URL)"
    )
    parser.add_argument(
        "--generate-only",
        action="store_true",
        help="Only show models that support generateContent"
    )

    args = parser.parse_args()

    settings = get_settings()
    keys = settings.general_keys()
    if not keys:
        print("ERROR: No Gemini API keys configured (set GEMINI_API_KEY or GEMINI_API_KEYS)")
        sys.exit(1)
    if not 0 <= args.key_index < len(keys):
        print(f"ERROR: --key-index must be between 0 and {len(keys) - 1}")
        sys.exit(1)

    url = models_endpoint(settings.gemini_api_url, args.api_version)
    print(f"Listing models from {url} with key #{args.key_index}")
    print("-" * 60)

    try:
        models = fetch_models(url, keys[args.key_index], settings.request_timeout_s)
    except httpx.HTTPStatusError as e:
        print(f"ERROR: {e.response.status_code} {e.response.text.strip()[:300]}")
        sys.exit(1)
    except httpx.HTTPError as e:
        print(f"ERROR: Request failed: {e}")
        sys.exit(1)

    if args.generate_only:
        models = [
            m for m in models
            if "generateContent" in m.get("supportedGenerationMethods", [])
        ]

    for model in models:
        print(model.get("name", "<unnamed>"))

    print("-" * 60)
    print(f"{len(models)} models")


if __name__ == "__main__":
    main()
