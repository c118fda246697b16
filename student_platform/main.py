import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from student_platform.core import config
from student_platform.core.errors import SERVER_ERROR_MESSAGE
from student_platform.database import Base, SessionLocal, engine, ensure_indexes
from student_platform.models import image, message, user  # noqa: F401
from student_platform.routes import auth_routes, chat_routes, image_routes
from student_platform.services.bootstrap import ensure_admin_user

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(title='Student Platform API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=config.CORS_ALLOW_ORIGINS != ['*'],
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'form')]
        field = '.'.join(location)
        text = error.get('msg', 'Invalid value')
        messages.append(f'{field}: {text}' if field else text)
    return '; '.join(messages) or 'Invalid request.'


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={'message': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'message': format_validation_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': SERVER_ERROR_MESSAGE},
    )


@app.on_event('startup')
def initialize_application() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_indexes()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')
        return

    db = SessionLocal()
    try:
        ensure_admin_user(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to create the default admin account.')
    finally:
        db.close()


@app.get('/')
def root():
    return {'status': 'Student Platform API Running'}


app.include_router(auth_routes.router, prefix=f'{config.API_PREFIX}/auth')
app.include_router(chat_routes.router, prefix=f'{config.API_PREFIX}/chat')
app.include_router(image_routes.router, prefix=config.API_PREFIX)
