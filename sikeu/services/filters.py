import enum


def _plain(value):
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _is_blank(value):
    return value is None or value == '' or value == 'all'


def filter_records(records, search=None, search_fields=(), **criteria):
    """
    Filter daftar yang sudah diambil, tanpa query baru ke database.

    ``search`` dicocokkan (case-insensitive, substring) ke salah satu
    ``search_fields``; setiap ``criteria`` harus sama persis dengan atribut
    record. Nilai kosong atau ``'all'`` berarti filter tidak aktif.
    """
    needle = (search or '').strip().lower()
    active = {key: _plain(value) for key, value in criteria.items() if not _is_blank(value)}

    result = []
    for record in records:
        if needle and not any(
            needle in str(getattr(record, field, '') or '').lower() for field in search_fields
        ):
            continue
        if any(_plain(getattr(record, key, None)) != value for key, value in active.items()):
            continue
        result.append(record)
    return result
