import uvicorn

from ipregistry.core.config import settings


def main():
    uvicorn.run(
        "ipregistry.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    main()
