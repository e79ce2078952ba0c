from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

from app.database.database import engine, Base

from app.common.middleware import SecurityHeadersMiddleware

from app.modules.reports import reports_router
from app.modules.reports.export import TableLayoutEngine

# Import models for table creation
import app.modules.categories.models
import app.modules.products.models
import app.modules.users.models
import app.modules.customers.models
import app.modules.ncf.models
import app.modules.sales.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="POS Reports API",
    description="Reportes de ventas y cumplimiento fiscal DGII para puntos de venta en República Dominicana",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Motor de tablas compartido por todas las exportaciones PDF
app.state.table_layout_engine = TableLayoutEngine()

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.include_router(reports_router, prefix="/api/v1")

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "POS Reports API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.on_event("startup")
async def startup_event():
    logger.info("POS Reports API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    app.state.table_layout_engine.verify()
    logger.info(f"Business name: {settings.BUSINESS_NAME}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("POS Reports API shutting down...")
