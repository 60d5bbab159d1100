"""
ASGI entrypoint. Loads .env, then builds the application from settings.

Run with:  uvicorn shareai.asgi:app
"""

from dotenv import load_dotenv

load_dotenv()

from shareai.main import create_app  # noqa: E402

app = create_app()
