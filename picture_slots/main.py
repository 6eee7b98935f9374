import logging
import os

from fastapi import FastAPI

from picture_slots.api.v1.routes import router as api_v1_router
from picture_slots.config import ENV_FILE, load_settings

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Load environment variables from .env file
print("\n" + "=" * 60)
print("🔧 LOADING PICTURE SLOT CONFIGURATION")
print("=" * 60)

env_path = ENV_FILE
print(f"Looking for .env file at: {env_path}")
if not env_path.exists():
    print(f"⚠ .env file not found at: {env_path}")
    print("  Using built-in defaults for any PICTURE_SLOTS_* variable not set")

settings = load_settings(env_path)
print(f"✓ Project root: {settings.project_root}")
print(f"✓ Output root: {settings.root_folder}")
print(f"✓ Random input: {settings.random_input_folder} (name filter '{settings.name_filter}')")
print(f"✓ Compressed folder: {settings.compressed_folder} (long side < {settings.max_long_side})")
print("=" * 60 + "\n")


def create_app() -> FastAPI:
    """
    Application factory for the Picture Slot API.

    Every operator command is a one-shot batch exposed as a POST endpoint.
    """
    app = FastAPI(
        title="Picture Slot API",
        version="0.1.0",
        description="Scan picture slots, generate compressed variants, and assign them at random.",
    )

    # Infrastructure-level health check (non-versioned) primarily for ops.
    @app.get("/health", tags=["health"])
    async def root_health_check() -> dict:
        """Simple root health check endpoint."""
        return {"status": "ok"}

    # Public, versioned API routes.
    app.include_router(api_v1_router)

    return app


app = create_app()
