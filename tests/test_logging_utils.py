import io
import json
import logging

from capalerts.logging_utils import configure_logging


def test_configure_logging_writes_json_lines() -> None:
    stream = io.StringIO()
    handler = configure_logging("DEBUG", stream=stream)
    try:
        logging.getLogger("capalerts.sources").info("Fetched alert document %s (%s bytes)", "x.xml", 12)
    finally:
        logging.getLogger().removeHandler(handler)
    record = json.loads(stream.getvalue().splitlines()[-1])
    assert record["message"] == "Fetched alert document x.xml (12 bytes)"
    assert record["levelname"] == "INFO"
    assert record["name"] == "capalerts.sources"
    assert "asctime" in record
