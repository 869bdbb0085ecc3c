from typing import Optional
from sqlalchemy.orm import Session
from chainxchange.crud.base import CRUDBase
from chainxchange.models.user import User
from chainxchange.schemas.user import UserCreate, UserUpdate

class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    def get_by_username(self, db: Session, *, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    # Balance changes are single UPDATE statements evaluated by the database,
    # never read-modify-write on a loaded User. Neither commits.

    def credit_wallet(self, db: Session, *, user_id: int, amount: float) -> None:
        db.query(User).filter(User.id == user_id).update(
            {User.wallet: User.wallet + amount}, synchronize_session=False
        )

    def debit_wallet(self, db: Session, *, user_id: int, amount: float) -> bool:
        """Subtracts ``amount`` only while the balance covers it; False when it does not."""
        updated = db.query(User).filter(User.id == user_id, User.wallet >= amount).update(
            {User.wallet: User.wallet - amount}, synchronize_session=False
        )
        return updated == 1

user = CRUDUser(User)
