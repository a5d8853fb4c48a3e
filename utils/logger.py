"""
Logger for tracking context analysis operations
"""

import logging
import json
import os
import threading
from datetime import datetime
from typing import Dict, Any, Optional
from config import LOGS_DIR, LOG_FORMAT, LOG_DATE_FORMAT

CONSOLE_HANDLER_NAME = 'MediaContext.console'
FILE_HANDLER_NAME = 'MediaContext.file'


class AnalysisLogger:
    """Handles logging for media tag context analysis"""

    def __init__(self, log_dir: str = LOGS_DIR):
        """
        Initialize AnalysisLogger

        Args:
            log_dir: Directory to store log files and reports
        """
        self.log_dir = log_dir
        os.makedirs(log_dir, exist_ok=True)

        # Core modules log through child loggers of this one
        self.logger = logging.getLogger('MediaContext')
        self.logger.setLevel(logging.DEBUG)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        # Console handler, shared by every open AnalysisLogger
        if self._console_handler() is None:
            console_handler = logging.StreamHandler()
            console_handler.set_name(CONSOLE_HANDLER_NAME)
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        # File handler (unique for each run)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_file = os.path.join(log_dir, f"analysis_{timestamp}.log")
        self.file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
        self.file_handler.set_name(FILE_HANDLER_NAME)
        self.file_handler.setLevel(logging.DEBUG)
        self.file_handler.setFormatter(formatter)
        self.logger.addHandler(self.file_handler)

        # Session data for report generation
        self.session_data = {
            'start_time': datetime.now().isoformat(),
            'parameters': {},
            'documents': []
        }
        self.lock = threading.Lock()

    def set_parameters(self, **kwargs) -> None:
        """
        Set execution parameters

        Args:
            **kwargs: Parameter key-value pairs
        """
        with self.lock:
            self.session_data['parameters'] = kwargs
            self.logger.info(f"Parameters: {json.dumps(kwargs, indent=2)}")

    def log_document_start(self, source: str) -> Dict[str, Any]:
        """
        Log the start of a document analysis

        Args:
            source: File path or other identifier of the document

        Returns:
            Document record dictionary
        """
        with self.lock:
            record = {
                'source': source,
                'start_time': datetime.now().isoformat(),
                'tags_found': 0,
                'timed_out': False,
                'groups': 0,
                'contexts_found': 0,
                'errors': [],
                'status': 'in_progress'
            }
            self.session_data['documents'].append(record)
            self.logger.info(f"Analyzing {source}")
            return record

    def log_detection(self, record: Dict[str, Any], tags_found: int,
                      timed_out: bool = False, error: Optional[str] = None) -> None:
        """
        Log tag detection results

        Args:
            record: Document record dictionary
            tags_found: Number of tags located
            timed_out: Whether the scan hit its time budget
            error: Error message if detection failed
        """
        with self.lock:
            record['tags_found'] = tags_found
            record['timed_out'] = timed_out

            if error:
                record['errors'].append(f"Detection error: {error}")
                self.logger.error(f"Tag detection failed for {record['source']}: {error}")
            elif timed_out:
                self.logger.warning(f"Tag detection timed out in {record['source']} "
                                    f"- using {tags_found} tags found before cutoff")
            elif tags_found == 0:
                self.logger.warning(f"No img or video tag found in {record['source']}")
            else:
                self.logger.info(f"Found {tags_found} tags in {record['source']}")

    def log_grouping(self, record: Dict[str, Any], stats: Dict[str, Any]) -> None:
        """
        Log context grouping statistics

        Args:
            record: Document record dictionary
            stats: Statistics from ContextCache.get_stats()
        """
        with self.lock:
            record['groups'] = stats['total_groups']
            self.logger.info(f"Grouped {stats['total_tags']} tags into {stats['total_groups']} "
                             f"groups in {record['source']} "
                             f"({stats['extractions_saved']} extractions saved)")

    def log_tag_context(self, record: Dict[str, Any], tag_label: str,
                        found: bool, error: Optional[str] = None) -> None:
        """
        Log context resolution for a single tag

        Args:
            record: Document record dictionary
            tag_label: Human-readable tag label (kind, file name, position)
            found: Whether surrounding text was found
            error: Error message if context extraction failed
        """
        with self.lock:
            if error:
                record['errors'].append(f"{tag_label} context error: {error}")
                self.logger.error(f"{tag_label} context error: {error}")
                return
            if found:
                record['contexts_found'] += 1
                self.logger.debug(f"Context found for {tag_label}")
            else:
                self.logger.debug(f"No surrounding text for {tag_label}")

    def log_document_complete(self, record: Dict[str, Any], status: str = 'completed') -> None:
        """
        Mark document processing as complete

        Args:
            record: Document record dictionary
            status: Final status (completed, failed, cancelled)
        """
        with self.lock:
            record['end_time'] = datetime.now().isoformat()
            record['status'] = status

            start = datetime.fromisoformat(record['start_time'])
            end = datetime.fromisoformat(record['end_time'])
            duration = (end - start).total_seconds()
            record['duration_seconds'] = duration

            self.logger.info(f"Finished {record['source']} ({status}) in {duration:.2f}s "
                             f"- Tags: {record['tags_found']}, Groups: {record['groups']}")

    def generate_report(self) -> str:
        """
        Generate final execution report

        Returns:
            JSON report string
        """
        with self.lock:
            self.session_data['end_time'] = datetime.now().isoformat()

            start = datetime.fromisoformat(self.session_data['start_time'])
            end = datetime.fromisoformat(self.session_data['end_time'])
            total_duration = (end - start).total_seconds()
            self.session_data['total_duration_seconds'] = total_duration

            documents = self.session_data['documents']
            total_tags = sum(d['tags_found'] for d in documents)
            total_groups = sum(d['groups'] for d in documents)
            self.session_data['summary'] = {
                'total_documents': len(documents),
                'completed': sum(1 for d in documents if d['status'] == 'completed'),
                'timed_out': sum(1 for d in documents if d['timed_out']),
                'total_tags': total_tags,
                'total_groups': total_groups,
                'contexts_found': sum(d['contexts_found'] for d in documents)
            }

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            report_file = os.path.join(self.log_dir, f"report_{timestamp}.json")
            with open(report_file, 'w', encoding='utf-8') as f:
                json.dump(self.session_data, f, indent=2, ensure_ascii=False)

            self.logger.info(f"Execution Report:")
            self.logger.info(f"  Total Duration: {total_duration:.2f}s")
            self.logger.info(f"  Documents: {len(documents)}")
            self.logger.info(f"  Tags Found: {total_tags}")
            self.logger.info(f"  Context Groups: {total_groups}")
            self.logger.info(f"  Report saved to: {report_file}")

            return json.dumps(self.session_data, indent=2)

    def _console_handler(self) -> Optional[logging.Handler]:
        for handler in self.logger.handlers:
            if handler.get_name() == CONSOLE_HANDLER_NAME:
                return handler
        return None

    def close(self) -> None:
        """
        Detach this run's file handler from the shared logger

        The console handler is detached with the last open AnalysisLogger.
        """
        if self.file_handler in self.logger.handlers:
            self.logger.removeHandler(self.file_handler)
            self.file_handler.close()

        if any(h.get_name() == FILE_HANDLER_NAME for h in self.logger.handlers):
            return
        console_handler = self._console_handler()
        if console_handler is not None:
            self.logger.removeHandler(console_handler)
            console_handler.close()

    def __enter__(self) -> 'AnalysisLogger':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def info(self, message: str) -> None:
        """Log info message"""
        with self.lock:
            self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log warning message"""
        with self.lock:
            self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log error message"""
        with self.lock:
            self.logger.error(message)
