from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from adblockpro.config import CLIENT_URL
from adblockpro.db import engine
from adblockpro.logging_config import setup_logging, get_logger
from adblockpro.middleware import (
    RequestIDMiddleware, TimingAccessLogMiddleware, SecurityHeadersMiddleware,
    ErrorEnvelopeMiddleware, install_error_handlers,
)
from adblockpro.models import Base
from adblockpro.ratelimit import install_rate_limiting
from adblockpro.routes.admin import router as admin_router
from adblockpro.routes.auth import router as auth_router
from adblockpro.routes.ops import router as ops_router
from adblockpro.routes.stats import router as stats_router
from adblockpro.routes.subscriptions import router as subscriptions_router
from adblockpro.routes.users import router as users_router
from adblockpro.routes.webhooks import router as webhooks_router

setup_logging()
logger = get_logger("adblockpro")

app = FastAPI(title="AdBlock Pro API")

# added innermost first
install_rate_limiting(app)
app.add_middleware(ErrorEnvelopeMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TimingAccessLogMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


app.include_router(ops_router)
app.include_router(webhooks_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(subscriptions_router)
app.include_router(stats_router)
app.include_router(admin_router)
