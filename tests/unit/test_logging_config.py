import logging

from sfbulk2.logging_config import configure_logging


def test_configure_logging_levels(caplog):
    # None: keep default WARNING (>=20)
    configure_logging(None)
    logger = logging.getLogger("sfbulk2.test")
    logger.warning("warn")
    assert any("warn" in rec.message for rec in caplog.records)

    caplog.clear()
    configure_logging(logging.INFO)
    logger.info("info-ok")
    assert any("info-ok" in rec.message for rec in caplog.records)

    caplog.clear()
    configure_logging(logging.DEBUG)
    logger.debug("dbg")
    assert any("dbg" in rec.message for rec in caplog.records)


def test_urllib3_loggers_quieted():
    configure_logging(logging.DEBUG)

    assert logging.getLogger("urllib3.connection").level == logging.ERROR
    assert logging.getLogger("urllib3.connectionpool").level == logging.ERROR
