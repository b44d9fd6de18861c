#!/usr/bin/env python3
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config import (ALLOWED_HOSTS, DB_PATH, DEFAULT_HOST, DEFAULT_PORT, GZIP_MIN_SIZE,
                    LOGIN_FIELDS, MESSAGE_FIELDS, PASSWORD_HASH_ROUNDS, SECRET_KEY,
                    SESSION_COOKIE_NAME, SESSION_EXPIRE_HOURS, SECONDS_PER_HOUR)
from database import timestamp
from exceptions import Exceptions, ForumError, StoreError, ValidationError
from forum import Forum
from models import ErrorResponse, ForumResponse, MessageResponse, PageResponse, ThreadEntryResponse
from sessions import Session

logger = logging.getLogger(__name__)


def error_response(exc: ForumError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.__class__.__name__, message=exc.message).model_dump()
    )


def render(template: str, context: Dict) -> JSONResponse:
    return JSONResponse(content=PageResponse(template=template, context=context).model_dump())


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


async def get_post(request: Request, fields: List[str]) -> Optional[Dict[str, str]]:
    """Extract the given form fields, trimmed; None if any is absent or blank"""
    form = await request.form()
    result = {}
    for name in fields:
        value = form.get(name)
        if not isinstance(value, str) or not value.strip():
            return None
        result[name] = value.strip()
    return result


class SessionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        forum: Forum = request.app.state.forum
        try:
            session = await forum.session_manager.load(request.cookies.get(SESSION_COOKIE_NAME))
        except ForumError as e:
            return error_response(e)

        request.state.session = session
        issued_id = session.session_id if session.persisted else None

        response = await call_next(request)

        if session.destroyed:
            response.delete_cookie(SESSION_COOKIE_NAME)
        elif session.persisted and session.session_id != issued_id:
            response.set_cookie(
                key=SESSION_COOKIE_NAME,
                value=forum.session_manager.cookie_value(session),
                max_age=SESSION_EXPIRE_HOURS * SECONDS_PER_HOUR,
                httponly=True,
                secure=False,  # Set to True in production with HTTPS
                samesite="lax"
            )
        return response


def get_forum(request: Request) -> Forum:
    return request.app.state.forum


def get_session(request: Request) -> Session:
    return request.state.session


def create_app(db_path: str = DB_PATH, secret_key: str = SECRET_KEY,
               password_rounds: int = PASSWORD_HASH_ROUNDS,
               default_forums: Optional[List[str]] = None,
               allowed_hosts: Optional[List[str]] = None) -> FastAPI:
    forum_instance = Forum(db_path, secret_key=secret_key, password_rounds=password_rounds,
                           default_forums=default_forums)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await forum_instance.start()
        try:
            yield
        finally:
            await forum_instance.stop()

    app = FastAPI(title="Forum", description="Threaded discussion forum", version="1.0.0", lifespan=lifespan)
    app.state.forum = forum_instance

    app.add_middleware(SessionMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts or ALLOWED_HOSTS)

    @app.exception_handler(ForumError)
    async def forum_exception_handler(request: Request, exc: ForumError):
        return error_response(exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="InternalServerError", message="An unexpected error occurred").model_dump()
        )

    # =========================================================================
    # FORUM PAGES
    # =========================================================================

    @app.get("/")
    async def home(forum: Forum = Depends(get_forum), session: Session = Depends(get_session)):
        forums = await forum.thread_manager.list_forums()
        context = forum.build_context(session)
        context["forums"] = [ForumResponse.from_forum(f).model_dump() for f in forums]
        return render("home", context)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": timestamp()}

    @app.get("/forum/{forum_id}")
    async def forum_page(forum_id: str, forum: Forum = Depends(get_forum),
                         session: Session = Depends(get_session)):
        info = await forum.require_forum(forum_id)
        messages = await forum.thread_manager.list_top_level_posts(forum_id)

        context = forum.build_context(session)
        context["forum_id"] = info.forum_id
        context["forum_name"] = info.name
        context["messages"] = [MessageResponse.from_message(m).model_dump() for m in messages]
        return render("forum", context)

    @app.get("/forum/{forum_id}/{message_id}")
    async def message_page(forum_id: str, message_id: str, forum: Forum = Depends(get_forum),
                           session: Session = Depends(get_session)):
        info = await forum.require_forum(forum_id)
        message = await forum.require_message(forum_id, message_id)
        replies = await forum.thread_manager.list_replies(message_id)
        thread = await forum.thread_manager.get_thread(forum_id, message_id)

        context = forum.build_context(session)
        context["forum_id"] = info.forum_id
        context["forum_name"] = info.name
        context["message"] = MessageResponse.from_message(message).model_dump()
        context["replies"] = [MessageResponse.from_message(r).model_dump() for r in replies]
        context["thread"] = [ThreadEntryResponse.from_entry(entry).model_dump() for entry in thread]
        return render("message", context)

    @app.post("/forum/{forum_id}")
    @app.post("/forum/{forum_id}/{message_id}")
    async def submit_message(request: Request, forum_id: str, message_id: str = "",
                             forum: Forum = Depends(get_forum), session: Session = Depends(get_session)):
        await forum.require_forum(forum_id)
        if forum.session_manager.current_user(session) is None:
            raise Exceptions.not_logged_in()

        fields = await get_post(request, MESSAGE_FIELDS)
        if fields is None:
            raise ValidationError(Exceptions.MISSING_FIELDS)

        message = await forum.post_message(session, forum_id, fields["title"], fields["body"],
                                           parent_id=message_id)
        return redirect(f"/forum/{forum_id}/{forum.thread_manager.thread_root_id(message)}")

    # =========================================================================
    # USER ENDPOINTS
    # =========================================================================

    @app.get("/users/login")
    async def login_page(forum: Forum = Depends(get_forum), session: Session = Depends(get_session)):
        return render("login", forum.build_context(session))

    @app.post("/users/login")
    async def login(request: Request, forum: Forum = Depends(get_forum),
                    session: Session = Depends(get_session)):
        fields = await get_post(request, LOGIN_FIELDS)
        if fields is None:
            raise ValidationError(Exceptions.MISSING_FIELDS)

        await forum.log_in(session, fields["username"], fields["password"])
        return redirect("/")

    @app.get("/users/create")
    async def signup_page(forum: Forum = Depends(get_forum), session: Session = Depends(get_session)):
        return render("signup", forum.build_context(session))

    @app.post("/users/create")
    async def signup(request: Request, forum: Forum = Depends(get_forum),
                     session: Session = Depends(get_session)):
        fields = await get_post(request, LOGIN_FIELDS)
        if fields is None:
            raise ValidationError(Exceptions.MISSING_FIELDS)

        await forum.sign_up(session, fields["username"], fields["password"])
        return redirect("/")

    @app.post("/users/logout")
    async def logout(forum: Forum = Depends(get_forum), session: Session = Depends(get_session)):
        try:
            await forum.log_out(session)
        except StoreError:
            logger.exception("Could not log out")
        return redirect("/")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    print("Starting forum server...")
    print(f"Available at http://localhost:{DEFAULT_PORT}")
    uvicorn.run(app, host=DEFAULT_HOST, port=DEFAULT_PORT)
