import json
import logging

import pytest
import structlog

from automaton_core.logging_config import PACKAGE_LOGGER, get_logger, setup_logging


@pytest.fixture
def restore_logging():
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    structlog.reset_defaults()


def read_records(log_dir):
    lines = (log_dir / "automaton.log").read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_setup_logging_writes_json_lines(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path), log_level="DEBUG", console_output=False)
    get_logger("nfa_to_dfa").info("state_expanded", state=3)

    [record] = read_records(tmp_path)
    assert record["event"] == "state_expanded"
    assert record["state"] == 3
    assert record["level"] == "info"
    assert record["logger"] == "automaton_core.nfa_to_dfa"
    assert not (tmp_path / "error.log").exists()


def test_bound_context_is_written(tmp_path, restore_logging):
    setup_logging(log_dir=str(tmp_path), console_output=False)
    log = get_logger("tm_simulator", machine="copier")
    log.info("round_finished", round=2)
    log.debug("below_threshold")

    [record] = read_records(tmp_path)
    assert record["machine"] == "copier"
    assert record["round"] == 2


def test_only_package_logger_is_configured(tmp_path, restore_logging):
    package_logger = setup_logging(log_dir=str(tmp_path), console_output=False)
    assert package_logger.name == PACKAGE_LOGGER
    assert len(package_logger.handlers) == 1
    assert not package_logger.propagate

    # Calling again replaces the handlers instead of stacking them
    setup_logging(console_output=True)
    assert [type(h) for h in package_logger.handlers] == [logging.StreamHandler]
