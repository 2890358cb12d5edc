import uvicorn

from api.settings import settings


if __name__ == "__main__":
    uvicorn.run(
        "api.app:app",
        host=settings.host,
        port=settings.port,
        root_path=settings.root_path,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
