# src/once_gate/models/preference.py
"""Key-value row backing the SQL preference store."""


from sqlalchemy import BigInteger, CheckConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from once_gate.db.session import Base


class Preference(Base):
    """One persisted gate entry.

    Mirrors a typed key-value store: exactly one of `int_value` and
    `str_value` is set.
    """

    __tablename__ = "once_preference"
    __table_args__ = (
        CheckConstraint(
            "(int_value IS NULL) <> (str_value IS NULL)",
            name="ck_once_preference_single_value",
        ),
    )

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    int_value: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    str_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def value(self) -> int | str | None:
        return self.int_value if self.int_value is not None else self.str_value
