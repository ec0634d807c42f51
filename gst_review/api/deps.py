from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError

from gst_review.core.config import ALGORITHM, INVOICE_STORE, SECRET_KEY
from gst_review.domain.persistence import Neo4jInvoiceStore
from gst_review.services.backend_client import BackendClient
from gst_review.services.database import get_db_driver
from gst_review.utils.logging_config import get_logger

logger = get_logger("api.deps")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

async def get_current_user_email(token: str = Depends(oauth2_scheme)) -> str:
    """
    Decodes the identity provider's JWT and returns the tenant email (sub).
    If it fails, raises 401.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication credentials",
                            headers={"WWW-Authenticate": "Bearer"})

    email = payload.get("sub")
    if email is None:
        raise HTTPException(status_code=401, detail="Token has no subject",
                            headers={"WWW-Authenticate": "Bearer"})
    return email

async def get_invoice_store(token: str = Depends(oauth2_scheme),
                            user_email: str = Depends(get_current_user_email)):
    """
    Store for the current tenant: the dashboard backend (token forwarded) or
    the Neo4j graph, depending on INVOICE_STORE.
    """
    if INVOICE_STORE == "backend":
        return BackendClient(token=token)

    driver = get_db_driver()
    if not driver:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return Neo4jInvoiceStore(driver, user_email)
