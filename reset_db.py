from sikeu import create_app
from sikeu.extensions import db
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

app = create_app()

with app.app_context():
    print("Sedang menghapus semua tabel...")

    # 1. Hapus tabel tracking migrasi (alembic_version)
    try:
        db.session.execute(text("DROP TABLE IF EXISTS alembic_version"))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        print(f"Warning alembic: {e}")

    # 2. Hapus semua tabel aplikasi (users, students, incomes, dll)
    db.drop_all()

    print("SUKSES! Database sekarang sudah kosong.")
