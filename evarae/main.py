from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from evarae.config import get_settings
from evarae.routers import orders
from evarae.routers import returns
from evarae.routers import admin_returns

logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(title="Evarae Storefront API")


@app.on_event("startup")
def on_startup():
    # Ensure all DB tables exist after all models are imported
    from evarae.models.user import Base, engine  # Base/engine single source
    import evarae.models.order  # register Order/OrderItem models
    import evarae.models.return_request  # register ReturnRequest model
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logging.error(f"Startup table creation failed: {e}")
        raise


# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(orders.admin_router, prefix="/api/admin/orders", tags=["admin-orders"])
app.include_router(returns.router, prefix="/api/account/return-requests", tags=["return-requests"])
app.include_router(admin_returns.router, prefix="/api/admin/return-requests", tags=["admin-returns"])


# --- Entry point for local runs ---
if __name__ == "__main__":
    import uvicorn, os
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("evarae.main:app", host="0.0.0.0", port=port, reload=False)
