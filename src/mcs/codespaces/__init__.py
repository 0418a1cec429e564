"""
Codespace orchestration: naming, image selection, compose artifacts,
ownership classification, lifecycle control and backups.
"""
