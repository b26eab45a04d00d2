import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.logging import configure_logging
from backend.database import init_database
from backend.routes import (
    attempt_routes,
    leaderboard_routes,
    question_routes,
    quiz_routes,
    subject_routes,
    user_routes,
    voting_routes,
)

configure_logging()

app = FastAPI(title='Question Bank API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    client = request.client.host if request.client else '<unknown>'
    origin = request.headers.get('origin', '<no origin>')
    logger.info('Incoming %s %s %s %s', client, origin, request.method, request.url.path)
    response = await call_next(request)
    logger.info('Finished %s for %s %s %s', response.status_code, client, request.method, request.url.path)
    return response


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_database()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'Working normally.'}


app.include_router(user_routes.router, prefix='/user')
app.include_router(subject_routes.router, prefix='/subject')
app.include_router(question_routes.router, prefix='/question')
app.include_router(voting_routes.router, prefix='/voting')
app.include_router(quiz_routes.router, prefix='/quiz')
app.include_router(attempt_routes.router, prefix='/attempt')
app.include_router(leaderboard_routes.router, prefix='/leaderboard')
