"""
Ledger Layer - Logging
Category logger shared by the transaction handler and the simulation
"""
import time
from typing import List, Dict


class Logger:
    """Simple logger for debugging and testing"""

    def __init__(self, name: str, verbose: bool = True):
        self.name = name
        self.verbose = verbose
        self.logs = []

    def log(self, category: str, message: str):
        """Log a message"""
        timestamp = time.time()
        log_entry = f"[{self.name[:8]}] [{category}] {message}"
        self.logs.append({
            "timestamp": timestamp,
            "node": self.name,
            "category": category,
            "message": message
        })
        if self.verbose:
            print(log_entry)

    def get_logs(self) -> List[Dict]:
        """Get all logs"""
        return self.logs

    def get_logs_by_category(self, category: str) -> List[Dict]:
        return [entry for entry in self.logs if entry["category"] == category]
