from __future__ import annotations

import uvicorn

from nodepanel.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("nodepanel.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
