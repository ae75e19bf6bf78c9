import uvicorn

from chatdesk.settings import ENVIRONMENT, PORT

if __name__ == "__main__":
    uvicorn.run("chatdesk.main:app", host="0.0.0.0", port=PORT, reload=ENVIRONMENT == "development")
