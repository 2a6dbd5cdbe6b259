from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn
import os

from routers import routing, floors

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title="Floor Plan Routing API",
    description="Pathfinding backend for the indoor floor-plan editor",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check endpoint (must be before other routes for priority)
@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "Floor Plan Routing API is running"}

@app.get("/")
async def root():
    return {"message": "Floor Plan Routing API", "version": "1.0.0", "status": "online"}

# Include routers
app.include_router(routing.router, prefix="/routing", tags=["routing"])
app.include_router(floors.router, prefix="/floors", tags=["floors"])

# Local development entry point
if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
