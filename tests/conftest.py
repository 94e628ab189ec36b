import pytest

from logspark.records import parse

SCENARIO = [
    "1.1.1.1,2024-02-25 12:34:56,/home,200,UA1",
    "1.1.1.2,2024-02-25 12:35:10,/home,500,UA2",
    "1.1.1.2,2024-02-25 12:36:10,/login,404,UA2",
    "1.1.1.2,2024-02-25 12:37:10,/login,404,UA2",
    "1.1.1.2,2024-02-25 12:38:10,/login,404,UA2",
    "1.1.1.2,2024-02-25 12:39:10,/login,404,UA2",
]


@pytest.fixture
def scenario_lines():
    return list(SCENARIO)


@pytest.fixture
def scenario_records():
    return [parse(line) for line in SCENARIO]
