from flask import Blueprint

from models import storage
from models.db_storage import StoreError

bp = Blueprint("health", __name__)

SERVICE = "channel-accounts-api"


@bp.get("/health")
def health():
    """
    Liveness plus a round trip to the account store
    ---
    tags:
      - Health
    responses:
      200:
        description: API and store are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: ok
      503:
        description: Store unreachable
    """
    try:
        storage.ping()
    except StoreError:
        return {"status": "degraded", "service": SERVICE, "database": "unavailable"}, 503
    return {"status": "ok", "service": SERVICE, "database": "ok"}, 200
