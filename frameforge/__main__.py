import uvicorn

from frameforge import config


def main() -> None:
    uvicorn.run("frameforge.main:app", host="0.0.0.0", port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
