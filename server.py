import uvicorn  # type: ignore

from workhub.utils import get_logger

log = get_logger(__name__)

if __name__ == "__main__":
    log.info("Running access server")
    uvicorn.run("workhub.main:app", reload=True, host="127.0.0.1", port=8000)
