"""
Load every collection once and print a summary.

Usage examples:
  python snapshot.py                      # REST backend from BUSNET_API_URL
  python snapshot.py --backend database   # read the database directly
  python snapshot.py --api-url http://localhost:3001/api
"""

import argparse
import asyncio

from busnet.config import configure_logging
from busnet.services.entities import FETCH_ORDER
from busnet.services.rest_client import RestClient
from busnet.services.store import DataStore, create_backend


async def run(backend_kind: str, api_url: str = None) -> None:
    if api_url:
        backend = RestClient(base_url=api_url)
    else:
        backend = create_backend(backend_kind)

    store = DataStore(backend)
    status = await store.test_connection()
    print(f"Backend reachable: {'yes' if status.success else 'no'}")
    if status.error:
        print(f"  error: {status.error}")

    async with store:
        print("\nCollections:")
        for name in FETCH_ORDER:
            print(f"  - {name}: {len(store[name])}")

        stats = store.dashboard_stats
        print("\nDashboard:")
        for field, value in stats.model_dump().items():
            print(f"  {field}: {value}")


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--backend", choices=["rest", "database"], default=None,
                        help="Binding to use (default: BUSNET_BACKEND or rest)")
    parser.add_argument("--api-url", default=None, help="Override the REST base URL")
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
    args = parser.parse_args()

    configure_logging(args.log_level)
    asyncio.run(run(args.backend, args.api_url))


if __name__ == "__main__":
    main()
