from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()


class KeyValue(db.Model):
    __tablename__ = "key_values"

    # Mirrors browser localStorage: one text document per key
    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)

    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self):
        return f"<KeyValue key={self.key}>"


class KeyValueStore:
    """get/set/remove over the key_values table. Each write commits."""

    def get(self, key):
        try:
            row = db.session.get(KeyValue, key)
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return row.value if row else None

    def set(self, key, value):
        row = db.session.get(KeyValue, key)
        if row is None:
            db.session.add(KeyValue(key=key, value=value))
        else:
            row.value = value
        db.session.commit()

    def remove(self, key):
        row = db.session.get(KeyValue, key)
        if row is not None:
            db.session.delete(row)
            db.session.commit()
