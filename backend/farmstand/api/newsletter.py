from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import logging

from farmstand.db.session import get_session
from farmstand.services.newsletter import subscribe
from farmstand.services.validation import Validator, coerce_string

logger = logging.getLogger(__name__)
router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}
HONEYPOT_FIELDS = ("honeypot", "hp", "website")


def _json(payload: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=NO_STORE)


@router.post("/newsletter")
async def newsletter_signup(request: Request):
    try:
        return await _signup(request)
    except Exception:
        logger.exception("newsletterSignup failed")
        return _json({"success": False, "error": "Unexpected server error"}, 500)


async def _signup(request: Request) -> JSONResponse:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return _json({"success": False, "error": "Unsupported Media Type"}, 415)

    try:
        body = await request.json()
    except ValueError:
        return _json({"success": False, "error": "Invalid JSON body"}, 400)

    # Bots fill every field; answer as if it worked so they move on.
    if isinstance(body, dict):
        trap = next((coerce_string(body.get(f)).strip() for f in HONEYPOT_FIELDS if body.get(f)), "")
        if trap:
            logger.info("Newsletter honeypot triggered")
            return _json({"success": True, "data": {"ignored": True}})

    validation = Validator().validate_newsletter(body)
    if not validation["ok"]:
        errors = validation["errors"]
        logger.warning("Rejected newsletter signup fields=%s", sorted(errors))
        return _json({"success": False, "error": next(iter(errors.values())), "details": errors}, 400)
    data = validation["data"]

    session = get_session()
    try:
        _, already = subscribe(session, data["email"], name=data["name"], source=data["source"])
    finally:
        session.close()

    return _json(
        {
            "success": True,
            "data": {
                "email": data["email"],
                "name": data["name"],
                "alreadySubscribed": already,
            },
            "message": "You are already on the list. Thanks!" if already else "Thanks for signing up! We will be in touch soon.",
        }
    )
