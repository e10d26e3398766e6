"""
Controle de Inventário de TI - IT Equipment Inventory
FastAPI backend
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from dotenv import load_dotenv
from pathlib import Path
import os
import logging

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from database import close_db, init_db, inventory_settings  # noqa: E402 - settings read the .env loaded above
from routes.attachment_routes import attachment_router  # noqa: E402
from routes.equipment_routes import equipment_router  # noqa: E402
from routes.history_routes import history_router  # noqa: E402
from routes.purchase_routes import purchase_router  # noqa: E402
from routes.term_routes import term_router  # noqa: E402

# Create the main app
app = FastAPI(
    title="Controle de Inventário de TI",
    description="Equipment inventory, purchase requests and responsibility terms",
    version="1.0.0"
)


@app.get("/health")
async def root_health_check():
    """Health check endpoint for liveness and readiness checks"""
    return {"status": "healthy"}


# ==================== Routes ====================
app.include_router(equipment_router)
app.include_router(attachment_router)
app.include_router(history_router)
app.include_router(purchase_router)
app.include_router(term_router)

# Uploaded attachments and term PDFs
app.mount(
    "/files",
    StaticFiles(directory=inventory_settings.storage_root, check_dir=False),
    name="files",
)

# ==================== CORS Configuration ====================
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Logging Configuration ====================
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ==================== Startup & Shutdown Events ====================
@app.on_event("startup")
async def startup_db_client():
    """Create tables on startup"""
    logger.info("Starting inventory backend...")
    await init_db()
    logger.info("Database initialized successfully")


@app.on_event("shutdown")
async def shutdown_db_client():
    """Close database connections on shutdown"""
    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")
