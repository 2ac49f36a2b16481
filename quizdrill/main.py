import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quizdrill.database import SessionLocal, init_db
from quizdrill.routers import auth, quiz


def _seed() -> None:
    from quizdrill.services.accounts import ensure_demo_user
    from quizdrill.services.question_bank import seed_questions

    db = SessionLocal()
    try:
        seed_questions(db)
        ensure_demo_user(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if os.environ.get("QUIZDRILL_SKIP_SEED") != "1":
        _seed()
    yield


app = FastAPI(title="QuizDrill Interview Practice API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz.router)
app.include_router(auth.router)


@app.get("/")
def root():
    return {"app": "quizdrill", "version": "0.1.0"}
