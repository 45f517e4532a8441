import logging

from fastapi import APIRouter, Request
from starlette.datastructures import UploadFile

from gstlogview.errors import EmptyUpload, PayloadTooLarge
from gstlogview.models import SessionStatusOut, UploadOut
from gstlogview.services import log_ingestor
from gstlogview.store import sessions
from gstlogview.store.sessions import SessionState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadOut)
async def upload_log(request: Request):
    """
    Accept a multipart upload (first file field wins) and parse it in the background.
    The session id comes back immediately; poll /api/sessions/{id} or just retry queries.
    """
    limit = request.app.state.settings.max_upload_bytes
    form = await request.form()
    upload = next((v for _, v in form.multi_items() if isinstance(v, UploadFile)), None)
    if upload is None:
        raise EmptyUpload()

    # size is known once the form is spooled; refuse before reading it into memory
    if upload.size is not None and upload.size > limit:
        await form.close()
        raise PayloadTooLarge(upload.size, limit)
    data = await upload.read()
    await form.close()
    if len(data) > limit:
        raise PayloadTooLarge(len(data), limit)

    store = sessions.get_store()
    sid = store.create()
    logger.info("Received %r (%d bytes) for session %s", upload.filename, len(data), sid)
    log_ingestor.submit(sid, data, store)
    return {"session_id": sid, "state": SessionState.PENDING.value}


@router.get("/sessions/{session_id}", response_model=SessionStatusOut)
def session_status(session_id: str):
    rec = sessions.get_store().status(session_id)
    warning = None
    if rec.state is SessionState.READY and not rec.entries:
        warning = "No entries were parsed; the file may be empty or not a GStreamer debug log"
    return {
        "session_id": rec.session_id,
        "state": rec.state.value,
        "entries": len(rec.entries),
        "stats": rec.stats or None,
        "error": rec.error,
        "warning": warning,
    }
