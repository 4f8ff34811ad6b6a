"""
remotedeploy Services Layer

One service per pipeline stage, all sharing a RemoteExecutor.
"""

from .remote_executor import RemoteExecutor
from .repository import RepositoryFetcher
from .reconciler import ResourceReconciler, ManagedTool
from .file_sync import FileSynchronizer, SyncStats
from .container_deployer import ContainerDeployer, wait_until_healthy
from .proxy_configurer import ProxyConfigurer, render_site_config
from .deployment_validator import DeploymentValidator
from .cleanup import CleanupOrchestrator

__all__ = [
    "RemoteExecutor",
    "RepositoryFetcher",
    "ResourceReconciler",
    "ManagedTool",
    "FileSynchronizer",
    "SyncStats",
    "ContainerDeployer",
    "wait_until_healthy",
    "ProxyConfigurer",
    "render_site_config",
    "DeploymentValidator",
    "CleanupOrchestrator",
]
