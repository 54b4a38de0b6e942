"""CPM entrypoint.

Run with:
  python -m cpm
"""

import uvicorn

from cpm.app import create_app
from cpm.config import Settings, configure_logging


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if settings.reload:
        # Reload mode needs an import string; cpm.asgi rebuilds settings in the worker.
        uvicorn.run("cpm.asgi:app", host=settings.host, port=settings.port, reload=True)
    else:
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)

if __name__ == "__main__":
    main()
