from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session
from chainxchange.core.database import get_db
from chainxchange.core.security import decode_access_token
from chainxchange.crud.user import user as user_crud
from chainxchange.models.user import User
from chainxchange.services.market_data import MarketDataService
from chainxchange.services.trading import TradingService

# Missing credentials are answered with our own 401 instead of HTTPBearer's error
http_bearer = HTTPBearer(auto_error=False)


def _user_from_token(db: Session, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[User]:
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        return None
    return user_crud.get(db, int(user_id))

def get_current_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> User:
    user = _user_from_token(db, credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

def get_optional_user(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[User]:
    return _user_from_token(db, credentials)

def get_market_data(request: Request) -> MarketDataService:
    market_data = getattr(request.app.state, "market_data", None)
    if market_data is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Market data service is not running"
        )
    return market_data

def get_trading_service(market_data: MarketDataService = Depends(get_market_data)) -> TradingService:
    return TradingService(market_data)
