import socket

import uvicorn

from studyrecall import app
from studyrecall.config import settings


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


if __name__ == "__main__":
    port = settings.port or find_free_port()
    print(f"PORT={port}", flush=True)
    uvicorn.run(app, host=settings.host, port=port, log_level=settings.log_level)
