"""
deltactl - Delta capture and replay CLI

Commands:
- deltactl install/uninstall/status - Capture hook management
- deltactl log tail/inspect/history/drop - Delta log operations
- deltactl replay - Replay the delta log into the restored database
- deltactl snapshot export/import/copy - JSON table snapshots
"""

__version__ = "0.1.0"
