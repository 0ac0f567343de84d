import math


class RecordStore:
    """Generic CRUD over the SQLAlchemy models.

    The session is passed in explicitly so that request handlers, tests and
    scripts decide which database they talk to.
    """

    def __init__(self, session):
        self.session = session

    def create(self, record):
        self.session.add(record)
        self.session.commit()
        return record

    def find_by_id(self, model, record_id):
        return self.session.get(model, record_id)

    def find(self, model, filters=None, order_by=None, page=1, limit=20):
        """Return ``(records, total)`` for one page of matching records"""
        query = self.session.query(model)
        if filters:
            query = query.filter_by(**filters)

        total = query.count()

        if order_by is not None:
            query = query.order_by(order_by)
        page = max(int(page), 1)
        limit = max(int(limit), 1)
        records = query.offset((page - 1) * limit).limit(limit).all()

        return records, total

    def update(self, record, **fields):
        for name, value in fields.items():
            setattr(record, name, value)
        self.session.commit()
        return record

    def delete(self, record):
        self.session.delete(record)
        self.session.commit()

    def increment(self, model, record_id, **deltas):
        """Atomically add to counter columns (``col = col + n``)"""
        values = {getattr(model, name): getattr(model, name) + delta
                  for name, delta in deltas.items()}
        self.session.query(model).filter(model.id == record_id).update(
            values, synchronize_session=False)
        self.session.commit()


def page_count(total, limit):
    return math.ceil(total / limit) if limit else 0
