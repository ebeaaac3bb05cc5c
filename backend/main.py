import os

from fastapi.openapi.utils import get_openapi
from dotenv import load_dotenv
from app.main import app

# Load environment variables for development
load_dotenv()

OPENAPI_TAGS = [
    {"name": "gigs", "description": "Gigs, their participants, staffing, bids and kit assignments."},
    {"name": "organizations", "description": "Organizations, members and invitations."},
    {"name": "invitations", "description": "Accepting organization invitations."},
    {"name": "users", "description": "User profiles and user search."},
    {"name": "assets", "description": "Equipment inventory."},
    {"name": "kits", "description": "Named bundles of assets and their scheduling conflicts."},
    {"name": "places", "description": "Venue lookup through Google Places."},
]


def custom_openapi() -> dict:
    """Return the OpenAPI schema with project metadata and the bearer scheme."""
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title="Gig Staffing API",
        version="1.0.0",
        description="Plan gigs, staff them, and coordinate the organizations that work them.",
        routes=app.routes,
        tags=OPENAPI_TAGS,
    )
    schema.setdefault("components", {}).setdefault("securitySchemes", {})["bearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "1") == "1",
        timeout_keep_alive=int(os.getenv("UVICORN_KEEPALIVE", "65")),
    )
