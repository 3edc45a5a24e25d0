import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import quizroom.database as database
import quizroom.models as models
from quizroom import classrooms, questions, quizzes, users
from quizroom.config import settings
from quizroom.errors import register_error_handlers
from quizroom.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Quizroom API")

# --- CORS setup ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(users.router)
app.include_router(classrooms.router)
app.include_router(quizzes.router)
app.include_router(questions.router)


# --- Schema ensure ---
@app.on_event("startup")
def ensure_schema():
    models.Base.metadata.create_all(bind=database.engine)
    logger.info("[startup] Tables ensured on %s", database.engine.url.render_as_string(hide_password=True))


@app.get("/")
def root():
    return {"success": True, "message": "Hello from quiz app!"}


# --- Run app ---
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quizroom.main:app", host="0.0.0.0", port=8000, reload=True)
