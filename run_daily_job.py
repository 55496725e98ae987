"""
Run the daily WhatsApp reminder job once, by hand (diagnostics / missed cron).

    python run_daily_job.py
"""
import json
import logging
import sys

from app.config import ConfigurationError
from app.infrastructure.db.session import get_session_factory
from app.application.daily_whatsapp_job import run_daily_whatsapp_job

logging.basicConfig(level=logging.INFO)

db = get_session_factory()()

try:
    result = run_daily_whatsapp_job(db, manual=True)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
except ConfigurationError as e:
    print(f"✗ Not configured: {e}")
    sys.exit(2)
except Exception as e:
    print(f"✗ ERROR: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
finally:
    db.close()
