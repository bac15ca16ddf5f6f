import logging

import pytest


def pytest_addoption(parser):
    parser.addoption(
        '--run-benchmarks',
        action='store_true', default=False, help='Run benchmarks')


def pytest_collection_modifyitems(config, items):
    if config.getoption('--run-benchmarks'):
        return
    skip_benchmark = pytest.mark.skip(
        reason='Needs --run-benchmark to run benchmarks')

    for item in items:
        if 'benchmark' in item.keywords:
            item.add_marker(skip_benchmark)


@pytest.fixture(autouse=True, scope='function')
def capture_templatenest_logs(caplog):
    """Turns on templatenest's debug logging for every test, so that it
    shows up in pytest's report for failing tests.
    """
    caplog.set_level(logging.DEBUG, logger='templatenest')
    yield
