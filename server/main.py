import logging

from studio import create_app

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

app = create_app()

if __name__ == "__main__":
    import uvicorn
    from studio.core.config import settings

    print(f"🚀 Starting Image Studio backend on {settings.host}:{settings.port}")
    print(f"📚 API docs: http://localhost:{settings.port}/docs")

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )
