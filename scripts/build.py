#!/usr/bin/env python3
"""
Build script for the support desk Lambda functions.

Every function ships the same code; only the handler setting differs. The
script installs the project with its runtime dependencies into a staging
directory, zips it once and prints the handler string of each function.
"""
import os
import shutil
import subprocess
import sys
import zipfile
from pathlib import Path

ARCHIVE_NAME = "support-desk.zip"


def discover_handlers(package_dir: Path):
    """Handler modules are the endpoint modules directly under ``handlers``."""
    return sorted(
        path.stem for path in (package_dir / "handlers").glob("*.py")
        if path.stem != "__init__"
    )


def main():
    """Main build function"""
    project_root = Path(__file__).parent.parent
    package_dir = project_root / "src" / "support_desk"
    build_dir = project_root / "build"
    staging_dir = build_dir / "staging"

    build_dir.mkdir(exist_ok=True)
    if staging_dir.exists():
        shutil.rmtree(staging_dir)
    staging_dir.mkdir()

    print("Installing support-desk and its dependencies...")
    subprocess.run([
        sys.executable, "-m", "pip", "install",
        str(project_root),
        "-t", str(staging_dir),
    ], check=True)

    zip_path = build_dir / ARCHIVE_NAME
    print(f"Creating {ARCHIVE_NAME}...")
    with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
        for root, _, files in os.walk(staging_dir):
            for file in files:
                file_path = Path(root) / file
                if file_path.suffix == ".pyc":
                    continue
                zipf.write(file_path, file_path.relative_to(staging_dir))

    shutil.rmtree(staging_dir)
    print(f"{ARCHIVE_NAME} created ({zip_path.stat().st_size} bytes)")

    print("Handlers:")
    for name in discover_handlers(package_dir):
        print(f"  {name.replace('_', '-')}: support_desk.handlers.{name}.lambda_handler")

    print("Build complete!")


if __name__ == "__main__":
    main()
