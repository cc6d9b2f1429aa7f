import os
import redis
from rq import Queue

# Redis shared by the web app and the worker
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
redis_conn = redis.from_url(REDIS_URL)

# Queue for daemon notification jobs
queue = Queue("provisioning", connection=redis_conn)
