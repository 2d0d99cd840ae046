import os

from fastapi import FastAPI
import uvicorn

from wallgo.routers.game_router import router as game_router

app = FastAPI(title="Wall Go")


# Health check
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


app.include_router(game_router, prefix="/v1/games", tags=["games"])


def run() -> None:
    host = os.getenv("WALLGO_HOST", "0.0.0.0")
    port = int(os.getenv("WALLGO_PORT", "8000"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
