"""JSON file sink: one file per package version."""

import json
import logging
from pathlib import Path

from pkgtrust.models.schemas import PackageRecord

logger = logging.getLogger(__name__)


class JsonResultSink:
    """Saves records under {data_dir}/scored/{name}@{version}.json."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.written: list[Path] = []

    def path_for(self, record: PackageRecord) -> Path:
        # Scoped npm names (@org/pkg) become @org__pkg
        safe_name = record.package_name.replace("/", "__")
        return self.data_dir / "scored" / f"{safe_name}@{record.package_version}.json"

    def write(self, record: PackageRecord) -> None:
        """Save record to disk, replacing an earlier save of the same version."""
        filepath = self.path_for(record)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data = record.model_dump(mode="json")
        filepath.write_text(json.dumps(data, indent=2))
        self.written.append(filepath)
        logger.info(f"Saved {record.package_name}@{record.package_version} to {filepath}")

    def close(self) -> None:
        pass
