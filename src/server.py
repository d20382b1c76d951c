import uvicorn
from quizbuilder_backend.settings import settings
from quizbuilder_backend.server import startup_logic

if __name__ == "__main__":

    if settings.DEBUG_MODE != "production":
        startup_logic()

    uvicorn.run("quizbuilder_backend.server:app", host="0.0.0.0", port=8000, log_level="debug", reload=True)
