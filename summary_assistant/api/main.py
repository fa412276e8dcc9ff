from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from summary_assistant import __version__
from summary_assistant.api.routes import router
from summary_assistant.config import logger, settings

# Initialize FastAPI app
app = FastAPI(
    title="Document Summary Assistant API",
    version=__version__,
    description="Upload PDFs or images to generate AI-powered summaries"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include router
app.include_router(router)

logger.info(f"Document Summary Assistant API {__version__} ready")

@app.get("/")
async def root():
    return {
        "message": "Document Summary Assistant API",
        "version": __version__,
        "status": "running"
    }

@app.get("/health")
async def health():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "summary_assistant.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=None  # Use our custom logging
    )
