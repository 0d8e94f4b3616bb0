"""
Google Analytics Counter — key/value state.

Holds values that must survive between scheduled runs but are not
configuration, e.g. the OAuth access token, its expiry and the refresh token.
"""

from sqlalchemy import Column, String, JSON

from gacounter.database import Base


class CounterState(Base):
    __tablename__ = "counter_state"

    key = Column(String(128), primary_key=True)
    value = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<CounterState {self.key}>"
