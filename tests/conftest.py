import pytest

from tableview.table import load


@pytest.fixture
def people():
    return load({
        "file_name": "people.csv",
        "file_type": "csv",
        "headers": ["name", "city", "age"],
        "rows": [
            ["Alice", "Montréal", "30"],
            ["bob", "Paris", "4"],
            ["Carol", "Berlin", "30"],
            ["Dave", "paris", "12.5"],
        ],
    })
