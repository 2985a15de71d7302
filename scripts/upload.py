#!/usr/bin/env python3
"""
Upload a local file to BunnyCDN storage.

Usage:
    python scripts/upload.py <file_path> [remote_name] [--zone ZONE] [--purge]

Examples:
    python scripts/upload.py logo.png
    python scripts/upload.py /path/to/logo.png images/logo.png
    python scripts/upload.py index.html --zone my-site --purge
"""
import os
import sys
import logging
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from bunny_storage import StorageClient, StorageError


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "info").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_size(bytes_size: float) -> str:
    """Format bytes to human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload a file to BunnyCDN storage")
    parser.add_argument("file_path", help="Local file to upload")
    parser.add_argument("remote_name", nargs="?", help="Path inside the zone (defaults to the file name)")
    parser.add_argument("--zone", help="Storage zone (defaults to BUNNY_STORAGE_ZONE)")
    parser.add_argument("--purge", action="store_true", help="Purge the CDN cache after uploading")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main upload function."""
    load_dotenv()
    try:
        args = parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors, 0 for --help
        return 1 if e.code else 0

    if not os.path.exists(args.file_path):
        print(f"❌ Error: File not found: {args.file_path}")
        return 1

    file_size = os.path.getsize(args.file_path)
    remote_name = args.remote_name or os.path.basename(args.file_path)

    print(f"📁 File: {os.path.basename(args.file_path)}")
    print(f"📏 Size: {format_size(file_size)}")
    print(f"🔑 Remote name: {remote_name}")
    print()

    try:
        client = StorageClient.from_env().select(remote_name, zone=args.zone)
        print(f"⚙️  Endpoint: {client.base_url} (zone: {client.zone})")
        logger.debug(f"Uploading {args.file_path} to {client.zone}/{remote_name}")

        print("📤 Uploading...")
        with open(args.file_path, "rb") as f:
            client.upload_file(f)
        print("✅ Upload successful!")

        if args.purge:
            status = client.purge_cache()
            if status is None:
                print("⚠️  Cache purge failed, see log for details")
            else:
                print(f"🧹 Cache purged (HTTP {status})")

    except StorageError as e:
        print()
        print(f"❌ Storage Error: {e}")
        print("\nTroubleshooting:")
        print("1. Check .env has BUNNY_STORAGE_ACCESS_KEY and BUNNY_API_KEY")
        print("2. Check the storage zone name and region")
        return 1

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n⚠️  Upload cancelled by user")
        sys.exit(1)
