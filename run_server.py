import sys

import uvicorn

from core.config import settings


def main():
    try:
        uvicorn.run(
            "core.main:app",
            host=settings.HOST,
            port=settings.PORT,
            # One process owns the scanner
            workers=1,
            log_config=None,
        )
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
