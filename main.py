# Entry point: serve the catalog API with uvicorn.
#   python main.py            (HOST / PORT from env or .env)

import uvicorn
from decouple import config

HOST = config("HOST", default="0.0.0.0")
PORT = config("PORT", default=3001, cast=int)

if __name__ == "__main__":
    uvicorn.run("catalog.main:app", host=HOST, port=PORT)
