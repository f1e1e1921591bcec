"""
SQL Managed Instance Migration - Orchestration Package

Drives a migration from an on-premises SQL Server into an Azure SQL
Managed Instance through the Azure database migration service:

- config: Settings and Azure clients
- models: Artifacts, connections, descriptors, observations
- services: sqlcmd execution, blob storage, backups, migration service
- orchestration: Launcher, monitor, cutover gate and the orchestrator
- utils: Validators, quoting and tool path helpers
- exceptions: Custom exceptions
"""

__version__ = "0.1.0"
