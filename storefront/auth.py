from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt

from storefront.config import JWT_SECRET

ADMIN = "ADMIN"
USER = "USER"


def decode_token(authorization: str) -> dict:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise JWTError("Expected a bearer token")
    claims = jwt.decode(token.strip(), JWT_SECRET, algorithms=["HS256"])
    if not claims.get("sub"):
        raise JWTError("Token has no subject")
    return {
        "uid": claims["sub"],
        "email": claims.get("email"),
        "role": claims.get("role", USER),
    }


def verify_token(authorization: str = Header(...)) -> dict:
    try:
        return decode_token(authorization)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or missing token")


def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    if not authorization:
        return None
    return verify_token(authorization)


def require_admin(user: dict = Depends(verify_token)) -> dict:
    if user["role"] != ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
