# teacher_directory/bulk_import.py
"""
Upload a whole sheet of teachers in one go.

The sheet (.csv or .xlsx) must have these exact column names:
name, floor, branch, directions, image
where ``image`` is the photo's file name without extension inside the
image folder.
"""

import argparse
import os
import time
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd
import requests

from .client import DirectoryClient, DirectoryClientError, prepare_upload_image

REQUIRED_COLUMNS = ["name", "floor", "branch", "directions", "image"]
ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png")


@dataclass
class ImportSummary:
    uploaded: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def read_sheet(data_file: str) -> pd.DataFrame:
    """Read the sheet with every column as a string."""
    if data_file.endswith(".xlsx"):
        df = pd.read_excel(data_file, dtype=str)
    elif data_file.endswith(".csv"):
        df = pd.read_csv(data_file, dtype=str)
    else:
        raise ValueError("Unsupported file format. Please use .xlsx or .csv")

    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Missing columns: {', '.join(missing)}")
    return df.fillna("")


def find_image(image_folder: str, image_base: str) -> Optional[str]:
    """Find ``<image_base>.<ext>`` with an allowed extension in any letter case."""
    for filename in sorted(os.listdir(image_folder)):
        stem, ext = os.path.splitext(filename)
        if stem == image_base and ext.lower() in ALLOWED_EXTENSIONS:
            return os.path.join(image_folder, filename)
    return None


def run(data_file: str, image_folder: str, client: DirectoryClient, pause: float = 0.5) -> ImportSummary:
    """Upload every complete row of ``data_file``. Rows without all fields or a photo are skipped."""
    if not os.path.isdir(image_folder):
        raise FileNotFoundError(f"The image folder '{image_folder}' was not found.")

    df = read_sheet(data_file)
    print(f"✅ Loaded {len(df)} records from '{data_file}'.")
    summary = ImportSummary()

    for _, row in df.iterrows():
        values = {column: str(row[column]).strip() for column in REQUIRED_COLUMNS}
        name = values["name"] or "<unnamed>"
        if not all(values.values()):
            print(f"  ❌ WARNING: Incomplete row for {name}. Skipping.")
            summary.skipped += 1
            continue

        local_image_path = find_image(image_folder, values["image"])
        if not local_image_path:
            print(f"  ❌ WARNING: Image for '{values['image']}' not found with any extension. Skipping {name}.")
            summary.skipped += 1
            continue

        try:
            with open(local_image_path, "rb") as f:
                image_content = prepare_upload_image(f.read())
        except (OSError, ValueError) as e:
            print(f"  ❌ WARNING: Could not read image file. Error: {e}")
            summary.skipped += 1
            continue

        try:
            print(f"  🚀 Uploading {name}...")
            client.add_person(
                name=values["name"],
                floor=values["floor"],
                branch=values["branch"],
                directions=values["directions"],
                image=image_content,
                filename=os.path.basename(local_image_path),
            )
            summary.uploaded += 1
            print(f"  ✅ Added {name}.")
        except (DirectoryClientError, requests.RequestException) as e:
            print(f"  ❌ FAILED to upload {name}. Error: {e}")
            summary.failed += 1
            summary.errors.append(f"{name}: {e}")

        if pause:
            time.sleep(pause)

    print(f"\n--- Finished: {summary.uploaded} uploaded, {summary.skipped} skipped, {summary.failed} failed ---")
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Bulk-upload teachers from a CSV/XLSX sheet.")
    parser.add_argument("data_file", help="Sheet with name, floor, branch, directions, image columns")
    parser.add_argument("image_folder", help="Folder holding the photos")
    parser.add_argument("--api-url", default=os.getenv("DIRECTORY_API_URL", "http://localhost:3000"))
    parser.add_argument("--username", default=os.getenv("DIRECTORY_ADMIN_USER"))
    parser.add_argument("--password", default=os.getenv("DIRECTORY_ADMIN_PASSWORD"))
    args = parser.parse_args(argv)

    if not os.path.exists(args.data_file):
        print(f"❌ Error: The data file '{args.data_file}' was not found.")
        return 1

    client = DirectoryClient(args.api_url)
    if args.username and args.password:
        try:
            client.login(args.username, args.password)
        except (DirectoryClientError, requests.RequestException) as e:
            print(f"❌ Error: Login failed: {e}")
            return 1

    try:
        summary = run(args.data_file, args.image_folder, client)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}")
        return 1
    return 0 if summary.failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
