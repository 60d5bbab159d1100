"""
Register a deployment provider. Run from project root:
  python -m shareai.scripts.create_provider NAME API_URL
"""
import argparse
import sys

from dotenv import load_dotenv

from shareai.core.config import get_settings
from shareai.core.database import create_db_engine, create_session_factory
from shareai.models.provider import Provider


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Register a ShareAI deploy provider.")
    parser.add_argument("name", help="Unique provider name (1-100 chars)")
    parser.add_argument("api_url", help="Provider API base URL (http or https)")
    args = parser.parse_args()

    name = args.name.strip()
    api_url = args.api_url.strip()
    if not name or len(name) > 100:
        print("Invalid provider name length.", file=sys.stderr)
        return 1
    if not (api_url.startswith("http://") or api_url.startswith("https://")):
        print("API URL must use http or https.", file=sys.stderr)
        return 1

    db = create_session_factory(create_db_engine(get_settings()))()
    try:
        if db.query(Provider).filter(Provider.name == name).first():
            print(f"Provider '{name}' already exists.", file=sys.stderr)
            return 1
        provider = Provider(name=name, api_url=api_url)
        db.add(provider)
        db.commit()
        print(f"Created provider '{name}' (id {provider.id}).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
