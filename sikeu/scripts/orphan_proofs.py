import argparse
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sikeu import create_app
from sikeu.errors import UploadError
from sikeu.extensions import db, drive_relay
from sikeu.models import PaymentProof

# File yang lebih muda dari ini mungkin metadata-nya masih sedang ditulis.
DEFAULT_MIN_AGE_HOURS = 24


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cari file bukti pembayaran di folder Google Drive yang tidak tercatat di payment_proofs."
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Hapus file yatim dari Google Drive. Tanpa ini hanya preview.",
    )
    parser.add_argument(
        "--min-age-hours",
        type=float,
        default=DEFAULT_MIN_AGE_HOURS,
        help=f"Abaikan file yang dibuat kurang dari N jam lalu (default {DEFAULT_MIN_AGE_HOURS}).",
    )
    return parser.parse_args()


def referenced_file_ids() -> set:
    return {row[0] for row in db.session.query(PaymentProof.file_id).all()}


def parse_created_time(value: Optional[str]) -> Optional[datetime]:
    """``createdTime`` Drive (RFC 3339, mis. ``2025-01-05T10:00:00.000Z``)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def find_orphans(
    drive_files: List[Dict],
    known_ids: set,
    min_age: timedelta = timedelta(hours=DEFAULT_MIN_AGE_HOURS),
    now: Optional[datetime] = None,
) -> List[Dict]:
    now = now or datetime.now(timezone.utc)
    orphans = []
    for f in drive_files:
        if f.get("id") in known_ids:
            continue
        created = parse_created_time(f.get("createdTime"))
        # Tanpa createdTime yang terbaca, umur file tidak bisa dipastikan
        if created is None or now - created < min_age:
            continue
        orphans.append(f)
    return orphans


def print_preview(orphans: List[Dict]) -> None:
    print(f"Total file yatim: {len(orphans)}")
    for f in orphans:
        print(f"- id={f.get('id')} nama={f.get('name')} dibuat={f.get('createdTime', '-')}")


def main() -> int:
    args = parse_args()
    app = create_app()

    with app.app_context():
        try:
            drive_files = drive_relay.list_folder_files()
        except UploadError as exc:
            print(f"Gagal membaca folder Google Drive: {exc}")
            return 1

        orphans = find_orphans(
            drive_files,
            referenced_file_ids(),
            min_age=timedelta(hours=args.min_age_hours),
        )
        print_preview(orphans)

        if not args.yes:
            print("Mode preview. Jalankan dengan --yes untuk menghapus file di atas.")
            return 0

        failed = 0
        for f in orphans:
            try:
                drive_relay.delete_file(f["id"])
            except UploadError as exc:
                failed += 1
                print(f"Gagal menghapus {f['id']}: {exc}")

        print(f"Selesai. Terhapus: {len(orphans) - failed}, gagal: {failed}")
        return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
