"""
Agregasi laporan keuangan: ringkasan dashboard, seri bulanan, komposisi
kategori, dan ekspor CSV. Semua fungsi murni di atas list yang sudah diambil.
"""
import csv
import io
from collections import OrderedDict, namedtuple
from datetime import date

from sikeu.models import StudentStatus

MONTH_LABELS = ('Jan', 'Feb', 'Mar', 'Apr', 'Mei', 'Jun', 'Jul', 'Agu', 'Sep', 'Okt', 'Nov', 'Des')
PERIODS = {'6months': 6, '12months': 12}

DashboardSummary = namedtuple(
    'DashboardSummary',
    ['balance', 'total_income', 'total_expense', 'month_income', 'month_expense', 'active_students'],
)


def _same_month(value, today):
    return value is not None and value.year == today.year and value.month == today.month


def dashboard_summary(incomes, expenses, students, today=None):
    today = today or date.today()
    total_income = sum(i.amount for i in incomes)
    total_expense = sum(e.amount for e in expenses)
    return DashboardSummary(
        balance=total_income - total_expense,
        total_income=total_income,
        total_expense=total_expense,
        month_income=sum(i.amount for i in incomes if _same_month(i.date, today)),
        month_expense=sum(e.amount for e in expenses if _same_month(e.date, today)),
        active_students=sum(1 for s in students if s.status == StudentStatus.ACTIVE),
    )


def _last_months(count, today):
    year, month = today.year, today.month
    keys = []
    for _ in range(count):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def monthly_series(incomes, expenses, months=6, today=None):
    """
    Pemasukan, pengeluaran dan saldo per bulan untuk ``months`` bulan terakhir
    (termasuk bulan berjalan), dikelompokkan per tahun+bulan.
    """
    today = today or date.today()
    buckets = OrderedDict(
        (key, {'month': f"{MONTH_LABELS[key[1] - 1]} {key[0]}", 'pemasukan': 0, 'pengeluaran': 0})
        for key in _last_months(months, today)
    )

    for income in incomes:
        key = (income.date.year, income.date.month)
        if key in buckets:
            buckets[key]['pemasukan'] += income.amount
    for expense in expenses:
        key = (expense.date.year, expense.date.month)
        if key in buckets:
            buckets[key]['pengeluaran'] += expense.amount

    series = []
    for row in buckets.values():
        row['saldo'] = row['pemasukan'] - row['pengeluaran']
        series.append(row)
    return series


def category_breakdown(records, label=None):
    """Total per kategori beserta persentasenya, urut dari nominal terbesar."""
    totals = OrderedDict()
    for record in records:
        category = label(record.category) if label else record.category
        totals[category] = totals.get(category, 0) + record.amount

    grand_total = sum(totals.values())
    rows = [
        {
            'name': name,
            'amount': amount,
            'percent': round(amount * 100 / grand_total) if grand_total else 0,
        }
        for name, amount in totals.items()
    ]
    rows.sort(key=lambda row: row['amount'], reverse=True)
    return rows


def export_csv(rows, columns):
    """
    ``columns`` berupa list ``(header, getter)``; getter adalah nama key/atribut
    atau callable yang menerima satu row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in columns])
    for row in rows:
        writer.writerow([_cell(row, getter) for _, getter in columns])
    return buffer.getvalue()


def _cell(row, getter):
    if callable(getter):
        value = getter(row)
    elif isinstance(row, dict):
        value = row.get(getter)
    else:
        value = getattr(row, getter, None)

    if value is None:
        return ''
    if hasattr(value, 'label'):
        return value.label
    if isinstance(value, date):
        return value.isoformat()
    return value
