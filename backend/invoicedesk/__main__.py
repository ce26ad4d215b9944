"""Run the API server: ``python -m invoicedesk``.

The desktop shell spawns this process and polls ``/api/health`` until it answers.
"""
import uvicorn

from .config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "invoicedesk.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
