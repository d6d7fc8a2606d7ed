"""StudioDesk entrypoint."""

import uvicorn

from studiodesk.config.settings import get_settings


def cli() -> None:
    """CLI entrypoint."""
    uvicorn.run("studiodesk.web.app:create_app", factory=True, reload=get_settings().debug)


if __name__ == "__main__":
    cli()
