"""
Main application entry point.
"""

import logging
import os

from fastapi import FastAPI
from app.api.v1.graph_endpoints import router as graph_router
from app.api.v1.recommendation_endpoints import router as recommendation_router

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Book Recommender API",
    description="Query-intent aware book recommendations over metadata and vector search.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Include API routers
app.include_router(recommendation_router, prefix="/api/v1", tags=["recommendations"])
app.include_router(graph_router, prefix="/api/v1", tags=["graph"])

@app.get("/")
def read_root():
    """Root endpoint."""
    return {
        "message": "Welcome to the Book Recommender API",
        "docs": "/docs",
        "health": "/api/v1/health"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)
