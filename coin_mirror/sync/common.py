import time
import uuid

from ..models import PassReport


def new_report(routine: str) -> PassReport:
    return PassReport(pass_id=f"{routine}-{int(time.time())}-{uuid.uuid4().hex[:6]}",
                      routine=routine)
