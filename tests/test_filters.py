from types import SimpleNamespace

from sikeu.models import StudentStatus
from sikeu.services.filters import filter_records

STUDENTS = [
    SimpleNamespace(name='Andi Santoso', nis='2501001', class_name='TK A', status=StudentStatus.ACTIVE),
    SimpleNamespace(name='Citra Lestari', nis='2501002', class_name='TK B', status=StudentStatus.ACTIVE),
    SimpleNamespace(name='Dodi Pratama', nis=None, class_name='TK A', status=StudentStatus.ALUMNI),
]


def names(records):
    return [r.name for r in records]


def test_search_is_case_insensitive_substring():
    assert names(filter_records(STUDENTS, search='SANTO', search_fields=('name', 'nis'))) == ['Andi Santoso']
    assert names(filter_records(STUDENTS, search='1002', search_fields=('name', 'nis'))) == ['Citra Lestari']


def test_criteria_match_enum_values_and_strings():
    assert names(filter_records(STUDENTS, class_name='TK A', status='active')) == ['Andi Santoso']
    assert names(filter_records(STUDENTS, status=StudentStatus.ALUMNI)) == ['Dodi Pratama']


def test_all_and_blank_disable_a_filter():
    assert len(filter_records(STUDENTS, search='', class_name='all', status=None)) == 3
