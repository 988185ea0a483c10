#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Base class for processing agents.
All agents (Scanner, Fixer, Tagger) inherit from this.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import time


class BaseAgent(ABC):
    """
    Abstract base class for processing agents.

    Agents are responsible for specific tasks in the pipeline:
    - Scanner: Catalog media files under a directory tree
    - Fixer: Merge metadata and artwork into a destination file
    - Tagger: Tag files from remote lookups
    """

    def __init__(self, config=None, report=None):
        """
        Initialize agent with configuration and reporting sink.

        Args:
            config: ConfigManager instance (optional)
            report: ReportLog instance (optional, prints when missing)
        """
        self.config = config
        self.report = report
        self._start_time: Optional[float] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Agent name identifier"""
        pass

    @abstractmethod
    def process(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process a single item.

        Args:
            item: Dictionary with item info including 'path'

        Returns:
            Dictionary with processing results
        """
        pass

    def process_batch(self, items: list, callback=None) -> Dict[str, Any]:
        """
        Process multiple items.

        Args:
            items: List of items to process
            callback: Optional callback(item, result, index) called after each item

        Returns:
            Summary of batch processing
        """
        results = {
            "total": len(items),
            "success": 0,
            "failed": 0,
            "skipped": 0,
            "items": []
        }

        self._start_time = time.time()

        for i, item in enumerate(items):
            self.log_progress(i + 1, len(items), str(item.get('path', '')))
            try:
                result = self.process(item)

                if result.get("status") == "success":
                    results["success"] += 1
                elif result.get("status") == "skipped":
                    results["skipped"] += 1
                else:
                    results["failed"] += 1

                results["items"].append(result)

                if callback:
                    callback(item, result, i)

            except Exception as e:
                results["failed"] += 1
                results["items"].append({
                    "path": item.get("path"),
                    "status": "error",
                    "error": str(e)
                })
                self.log_error(f"Error processing {item.get('path')}: {e}")

        results["duration"] = time.time() - self._start_time
        return results

    def log(self, message: str) -> None:
        """Log a message with agent name prefix"""
        if self.report is not None:
            self.report.write(message, source=self.name)
        else:
            print(f"[{self.name}] {message}")

    def log_warning(self, message: str) -> None:
        """Log a warning"""
        if self.report is not None:
            self.report.warning(message, source=self.name)
        else:
            print(f"[{self.name}] WARNING: {message}")

    def log_error(self, message: str) -> None:
        """Log an error message"""
        if self.report is not None:
            self.report.error(message, source=self.name)
        else:
            print(f"[{self.name}] ERROR: {message}")

    def log_progress(self, current: int, total: int, item_name: str = "") -> None:
        """Log progress update"""
        percent = (current / total * 100) if total > 0 else 0
        elapsed = time.time() - self._start_time if self._start_time else 0

        if elapsed > 0 and current > 1:
            rate = (current - 1) / elapsed
            remaining = (total - current + 1) / rate if rate > 0 else 0
            eta = f"ETA: {remaining:.0f}s"
        else:
            eta = ""

        self.log(f"[{current}/{total}] ({percent:.0f}%) {item_name} {eta}".rstrip())

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        if self.config is None:
            return default
        return self.config.get(key, default)
