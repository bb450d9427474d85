import hashlib, json, time, os
from typing import Any, Optional

from src.core.logger import get_logger
from src.sql.builder import CompiledQuery

logger = get_logger(__name__)


def _canonical(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, default=str)


def query_fingerprint(compiled: CompiledQuery) -> str:
    j = _canonical(compiled.to_dict())
    return hashlib.sha256(j.encode()).hexdigest()


def write_audit(event_id, request: Optional[dict], compiled: CompiledQuery, outdir='runs'):
    os.makedirs(outdir, exist_ok=True)
    fingerprint = query_fingerprint(compiled)
    rec = {
        'event_id': event_id,
        'request': request,
        'sql': compiled.sql,
        'params': compiled.params,
        'fingerprint': fingerprint,
        'ts': int(time.time())
    }
    path = os.path.join(outdir, f'audit_{rec["ts"]}_{fingerprint[:12]}.json')
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(rec, f, ensure_ascii=False, indent=2, default=str)
    logger.info('audit record %s written for event %s', path, event_id)
    return path
