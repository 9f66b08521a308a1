"""
FastAPI Production Application

Main entry point for the Coffee Sales Analytics API.
"""

from coffee_sales.serving.api.main import create_api_app

app = create_api_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    from coffee_sales.config import get_settings

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
