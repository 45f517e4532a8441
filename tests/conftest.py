import pytest
from fastapi.testclient import TestClient

from gstlogview.config import Settings
from gstlogview.main import create_app
from gstlogview.services.log_parser import Entry, Level
from gstlogview.store.sessions import SessionStore

SAMPLE_LINE = (
    "0:00:00.123456789  1234   0x55d5c3a1b6e0 DEBUG videodecoder "
    "gstvideodecoder.c:1200:gst_video_decoder_finish_frame:<dec0> some message"
)

SAMPLE_LOG = "\n".join([
    SAMPLE_LINE,
    "0:00:00.400000000  1234   0x55d5c3a1b6e0 ERROR  GST_PADS gstpad.c:4512:gst_pad_push_data:<queue0:src> not-negotiated",
    "this line is not part of the grammar",
    "0:00:00.900000000  1235   0x7f3a2c001b70 INFO   GST_STATES gstelement.c:2900:gst_element_change_state: pipeline   ready",
    "",
    "0:00:01.500000000  1234   0x55d5c3a1b6e0 WARN   videodecoder gstvideodecoder.c:3001:gst_video_decoder_decide_allocation:<dec0> no pool",
]) + "\n"


@pytest.fixture
def sample_line():
    return SAMPLE_LINE


@pytest.fixture
def sample_log():
    return SAMPLE_LOG.encode()


@pytest.fixture
def make_entry():
    def _make(
        timestamp=0,
        pid=1234,
        thread="0x55d5c3a1b6e0",
        level=Level.DEBUG,
        category="videodecoder",
        file="gstvideodecoder.c",
        line=1200,
        function="gst_video_decoder_finish_frame",
        message="some message",
        object="dec0",
    ):
        return Entry(
            timestamp=timestamp,
            pid=pid,
            thread=thread,
            level=level,
            category=category,
            file=file,
            line=line,
            function=function,
            message=message,
            object=object,
        )

    return _make


@pytest.fixture
def store():
    return SessionStore(max_sessions=8)


@pytest.fixture
def settings():
    return Settings(max_sessions=8, session_ttl=0, parse_workers=1, max_upload_bytes=1024 * 1024)


@pytest.fixture
def client(settings):
    """TestClient with startup/shutdown handlers run (fresh store per test)."""
    with TestClient(create_app(settings)) as c:
        yield c
