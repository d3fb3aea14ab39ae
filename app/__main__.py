"""Serve the API with uvicorn: `python -m app` or `todo-sync-api`"""
import uvicorn

from app import config


def main():
    uvicorn.run("app.main:app", host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    main()
