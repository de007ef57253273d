import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from entaneer_mind.core import config
from entaneer_mind.database import Base, engine, ensure_appointment_schema, ensure_schedule_schema, ensure_user_schema
from entaneer_mind.models import appointment, case_code, case_note, schedule_slot, user  # noqa: F401
from entaneer_mind.routes import (
    admin_routes,
    appointment_routes,
    auth_routes,
    case_note_routes,
    case_routes,
    onboarding_routes,
    report_routes,
    schedule_routes,
    user_routes,
)

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Entaneer Mind API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_user_schema()
        ensure_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Counseling API Running'}


app.include_router(auth_routes.router, prefix=f'{config.API_PREFIX}/auth')
app.include_router(user_routes.router, prefix=f'{config.API_PREFIX}/users')
app.include_router(onboarding_routes.router, prefix=f'{config.API_PREFIX}/onboarding')
app.include_router(case_routes.router, prefix=f'{config.API_PREFIX}/cases')
app.include_router(schedule_routes.router, prefix=f'{config.API_PREFIX}/schedule')
app.include_router(appointment_routes.router, prefix=f'{config.API_PREFIX}/appointments')
app.include_router(case_note_routes.router, prefix=f'{config.API_PREFIX}/case-notes')
app.include_router(admin_routes.router, prefix=f'{config.API_PREFIX}/admin')
app.include_router(report_routes.router, prefix=f'{config.API_PREFIX}/reports')
