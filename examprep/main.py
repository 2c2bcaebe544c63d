# examprep/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examprep.core.config import settings
from examprep.core.logging_config import configure_logging
from examprep.db.base import Base
from examprep.db.session import engine
from examprep.api.v1.endpoints import (
    evaluations,
    health,
    materials,
    mock_papers,
    study_content,
    submissions,
)

API_PREFIX = "/api/v1"

app = FastAPI(title=settings.PROJECT_NAME)

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    configure_logging()
    Base.metadata.create_all(bind=engine)


app.include_router(evaluations.router, prefix=API_PREFIX)
app.include_router(submissions.router, prefix=API_PREFIX)
app.include_router(materials.router, prefix=API_PREFIX)
app.include_router(study_content.router, prefix=API_PREFIX)
app.include_router(mock_papers.router, prefix=API_PREFIX)
app.include_router(health.router, prefix=API_PREFIX)
