import logging
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from entaneer_mind.auth import jwt_handler, oauth
from entaneer_mind.core import config
from entaneer_mind.database import get_db
from entaneer_mind.models.user import ROLE_CLIENT, STATUS_PENDING, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


@router.get("/login")
def login(state: str | None = Query(default=None)):
    return RedirectResponse(url=oauth.build_authorize_url(state))


def upsert_oauth_user(profile: dict, db: Session) -> User:
    user = (
        db.query(User)
        .filter(
            (User.sso_subject == profile["sso_subject"])
            | (User.account == profile["account"])
        )
        .first()
    )
    if user is None:
        user = User(
            account=profile["account"],
            sso_subject=profile["sso_subject"],
            first_name=profile["first_name"],
            last_name=profile["last_name"],
            client_id=profile["client_id"],
            department=profile["department"],
            role=ROLE_CLIENT,
            status=STATUS_PENDING,
        )
        db.add(user)
        logger.info("Registered new account %s", profile["account"])
    else:
        user.sso_subject = user.sso_subject or profile["sso_subject"]
        user.first_name = user.first_name or profile["first_name"]
        user.last_name = user.last_name or profile["last_name"]
    db.commit()
    db.refresh(user)
    return user


def build_frontend_redirect(token: str) -> str:
    parsed = urlparse(config.FRONTEND_LOGIN_REDIRECT_URL)
    query = dict(parse_qsl(parsed.query))
    query.update({"token": token})
    return urlunparse(parsed._replace(query=urlencode(query)))


@router.get("/callback")
async def oauth_callback(code: str = Query(...), db: Session = Depends(get_db)):
    try:
        provider_token = await oauth.exchange_code(code)
        profile = oauth.normalize_user_info(await oauth.fetch_user_info(provider_token))
    except oauth.OAuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = upsert_oauth_user(profile, db)

    token = jwt_handler.create_access_token(subject=user.account, role=user.role)
    if config.FRONTEND_LOGIN_REDIRECT_URL:
        return RedirectResponse(url=build_frontend_redirect(token))
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout")
def logout():
    # Tokens are stateless; the client drops its stored copy.
    return {"message": "Logged out"}
