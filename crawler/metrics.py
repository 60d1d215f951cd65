"""
Centralized metrics tracking and terminal summary for the crawler.
"""

import os
import time
from collections import defaultdict
from datetime import timedelta
from threading import Lock

import psutil
from tabulate import tabulate


class CrawlMetrics:
    """
    Thread-safe per-worker counters plus process memory sampling.
    """

    def __init__(self):
        self.lock = Lock()
        self.start_time = time.time()
        self.worker_stats = defaultdict(lambda: {
            'attempts': 0,
            'success_count': 0,
            'retry_count': 0,
            'skipped_count': 0,
            'failed_count': 0,
            'links_admitted': 0,
            'render_time': 0.0,
        })
        self.process = psutil.Process(os.getpid())
        self.initial_memory_mb = self._memory_mb()
        self.peak_memory_mb = self.initial_memory_mb

    def _memory_mb(self) -> float:
        return self.process.memory_info().rss / 1024 / 1024

    def record_attempt(self, worker_name, render_seconds):
        with self.lock:
            ws = self.worker_stats[worker_name]
            ws['attempts'] += 1
            ws['render_time'] += render_seconds

    def record_success(self, worker_name, links_admitted=0):
        memory = self._memory_mb()
        with self.lock:
            ws = self.worker_stats[worker_name]
            ws['success_count'] += 1
            ws['links_admitted'] += links_admitted
            self.peak_memory_mb = max(self.peak_memory_mb, memory)

    def record_retry(self, worker_name):
        with self.lock:
            self.worker_stats[worker_name]['retry_count'] += 1

    def record_skipped(self, worker_name):
        with self.lock:
            self.worker_stats[worker_name]['skipped_count'] += 1

    def record_failed(self, worker_name):
        with self.lock:
            self.worker_stats[worker_name]['failed_count'] += 1

    def totals(self):
        with self.lock:
            totals = defaultdict(float)
            for ws in self.worker_stats.values():
                for k, v in ws.items():
                    totals[k] += v
        return {
            'attempts': int(totals['attempts']),
            'success_count': int(totals['success_count']),
            'retry_count': int(totals['retry_count']),
            'skipped_count': int(totals['skipped_count']),
            'failed_count': int(totals['failed_count']),
            'links_admitted': int(totals['links_admitted']),
            'render_time': totals['render_time'],
        }

    def summary_table(self) -> str:
        with self.lock:
            rows = [
                [
                    name,
                    ws['attempts'],
                    ws['success_count'],
                    ws['retry_count'],
                    ws['skipped_count'],
                    ws['failed_count'],
                    ws['links_admitted'],
                    f"{ws['render_time'] / max(1, ws['attempts']):.2f}s",
                ]
                for name, ws in sorted(self.worker_stats.items())
            ]
        return tabulate(
            rows,
            headers=['Worker', 'Renders', 'Success', 'Retries', 'Skipped', 'Failed', 'Links Admitted', 'Avg Render'],
            tablefmt='grid',
        )

    def print_summary(self, frontier_stats):
        """
        Print the terminal crawl summary.
        """
        elapsed = time.time() - self.start_time
        totals = self.totals()
        final_mem = self._memory_mb()

        print("\n" + "=" * 60)
        print("CRAWL SESSION SUMMARY")
        print("=" * 60)
        print(f"   Duration:              {timedelta(seconds=int(elapsed))}")
        print(f"   Pages stored:          {totals['success_count']}")
        print(f"   Retries:               {totals['retry_count']}")
        print(f"   Skipped:               {totals['skipped_count']}")
        print(f"   Failed:                {totals['failed_count']}")
        print(f"   Admitted / budget:     {frontier_stats['admitted_count']} / {frontier_stats['max_requests']}")
        print(f"   Left in queue:         {frontier_stats['queue_size']}")
        print(f"   Deferred (budget):     {frontier_stats['deferred_count']}")
        print(f"   Crawl speed:           {totals['success_count'] / max(0.001, elapsed):.2f} pages/s")
        print(f"   Memory (initial/peak/final): "
              f"{self.initial_memory_mb:.2f} / {max(self.peak_memory_mb, final_mem):.2f} / {final_mem:.2f} MB")
        if self.worker_stats:
            print("\nWORKER STATISTICS:")
            print(self.summary_table())
        print("=" * 60)
