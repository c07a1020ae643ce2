from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables before the config module reads them
load_dotenv()

from bgtheme import __version__  # noqa: E402
from bgtheme.api.v1 import router as v1_router  # noqa: E402
from bgtheme.schemas import HealthResponse  # noqa: E402

app = FastAPI(
    title="bgtheme",
    description="Derive desktop theme colors from wallpaper images",
    version=__version__
)

# Preview clients run on localhost only
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(v1_router)


@app.get("/bgtheme/healthz", response_model=HealthResponse)
def bgtheme_health_check():
    """Theme derivation service health check."""
    return HealthResponse(ok=True, version=__version__, service="bgtheme")


@app.get("/")
def root():
    return {
        "service": "bgtheme",
        "version": __version__,
        "endpoints": {
            "health": "/bgtheme/healthz",
            "derive": "/v1/theme",
            "derive_base64": "/v1/theme/base64",
            "stored": "/v1/theme/{mode}",
            "metrics": "/v1/metrics",
        },
    }

