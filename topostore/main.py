# topostore/main.py
import os
from dotenv import load_dotenv
load_dotenv()

from topostore.app import create_app

app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run(
        "topostore.main:app",
        host=os.getenv("TOPOSTORE_HOST", "127.0.0.1"),
        port=int(os.getenv("TOPOSTORE_PORT", "8000")),
    )


if __name__ == "__main__":
    run()
