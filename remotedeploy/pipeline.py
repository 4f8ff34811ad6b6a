"""
Deployment Pipeline

Runs the stages in order and stops at the first failure. Every failure is
recorded as a StageResult carrying its exit category.
"""

import shlex
import subprocess
import time
from typing import Callable, List, Optional, Tuple

from remotedeploy.exceptions import RemoteConnectionError, RemoteDeployError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.config import Credential, DeploymentConfig
from remotedeploy.models.results import PipelineResult, Stage, StageResult
from remotedeploy.services.cleanup import CleanupOrchestrator
from remotedeploy.services.container_deployer import ContainerDeployer
from remotedeploy.services.deployment_validator import DeploymentValidator, external_status
from remotedeploy.services.file_sync import FileSynchronizer
from remotedeploy.services.proxy_configurer import ProxyConfigurer
from remotedeploy.services.reconciler import ResourceReconciler
from remotedeploy.services.remote_executor import RemoteExecutor
from remotedeploy.services.repository import RepositoryFetcher


class Pipeline:
    """
    Sequences repository fetch, connectivity, environment, file sync,
    containers, proxy and validation against one DeploymentConfig.

    Every service shares the same RemoteExecutor. Subprocess runners and the
    sleep function are injectable so the whole run can be driven by fakes.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        credential: Optional[Credential] = None,
        logger: Optional[DeployLogger] = None,
        executor: Optional[RemoteExecutor] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        sleep: Callable[[float], None] = time.sleep,
        http_get: Callable[[str], Optional[int]] = external_status,
        require_key: bool = True,
    ):
        self.config = config
        self.credential = credential or Credential("")
        self.logger = logger
        self.runner = runner
        self.sleep = sleep
        self.require_key = require_key
        self.executor = executor or RemoteExecutor(config.connection, logger=logger, runner=runner)

        if logger:
            logger.redact.add(self.credential.value)

        self.fetcher = RepositoryFetcher(config, self.credential, logger=logger, runner=runner)
        self.reconciler = ResourceReconciler(self.executor, logger=logger)
        self.synchronizer = FileSynchronizer(config.connection, logger=logger, runner=runner)
        self.deployer = ContainerDeployer(self.executor, config.remote_root, logger=logger, sleep=sleep)
        self.proxy = ProxyConfigurer(self.executor, logger=logger)
        self.validator = DeploymentValidator(self.executor, logger=logger, http_get=http_get)
        self.cleaner = CleanupOrchestrator(self.executor, logger=logger)

    def stages(self) -> List[Tuple[Stage, str, Callable[[], StageResult]]]:
        """Stage, display title and action, in execution order."""
        return [
            (Stage.CONFIGURATION, "Validating configuration", self.validate_config),
            (Stage.REPOSITORY, "Fetching repository", self.fetcher.fetch),
            (Stage.CONNECTIVITY, "Checking server connectivity", self.check_connectivity),
            (Stage.ENVIRONMENT, "Preparing server environment", self.reconciler.reconcile),
            (Stage.FILE_SYNC, "Transferring project files", self.sync_files),
            (Stage.CONTAINERS, "Deploying containers", self.deploy_containers),
            (Stage.PROXY, "Configuring nginx reverse proxy", self.configure_proxy),
            (Stage.VALIDATION, "Validating deployment", self.validate_deployment),
        ]

    def run(
        self,
        cleanup: bool = False,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> PipelineResult:
        """
        Run every stage, fail-fast.

        Args:
            cleanup: Tear the deployment down after a successful run
            confirm: Asked with the application name before teardown; no
                callable means no confirmation is needed

        Returns:
            PipelineResult whose category is the first failure, or SUCCESS
        """
        result = PipelineResult()
        for stage, title, action in self.stages():
            if not self._run_stage(result, stage, title, action):
                return result

        repository = result.stage(Stage.REPOSITORY)
        if repository:
            result.commit = repository.data.get("commit")

        if cleanup:
            if confirm is not None and not confirm(self.config.app_name):
                self._log("Cleanup skipped")
            else:
                self._run_stage(result, Stage.CLEANUP, "Cleaning up deployment", self.teardown)
        return result

    def run_teardown(self) -> PipelineResult:
        """Validate the configuration, check connectivity and tear down."""
        result = PipelineResult()
        for stage, title, action in [
            (Stage.CONFIGURATION, "Validating configuration", self.validate_config),
            (Stage.CONNECTIVITY, "Checking server connectivity", self.check_connectivity),
            (Stage.CLEANUP, "Cleaning up deployment", self.teardown),
        ]:
            if not self._run_stage(result, stage, title, action):
                break
        return result

    def validate_config(self) -> StageResult:
        self.config.validate(require_key=self.require_key)
        return StageResult.ok(Stage.CONFIGURATION, f"Application: {self.config.app_name}")

    def check_connectivity(self) -> StageResult:
        """Ping is advisory; the SSH check decides."""
        result = StageResult.ok(Stage.CONNECTIVITY, "SSH connection established")
        if self.executor.ping():
            self._log(f"Server {self.config.server} is reachable")
        else:
            warning = "Server not responding to ping (may be blocked by firewall)"
            result.add_warning(warning)
            if self.logger:
                self.logger.warning(warning)

        if not self.executor.connectivity_check():
            raise self.executor.last_connection_error or RemoteConnectionError(
                "Cannot establish SSH connection",
                context=f"Host: {self.config.connection.connection_string}",
            )
        return result

    def prepare_remote_root(self) -> None:
        """Create the project directory owned by the SSH user."""
        user = shlex.quote(self.config.ssh_user)
        root = shlex.quote(self.config.remote_root)
        self.executor.run(
            f"sudo mkdir -p {root}\n"
            f"sudo chown {user}:{user} {root}\n",
            description="Create project directory",
            check=True,
        )

    def sync_files(self) -> StageResult:
        self.prepare_remote_root()
        return self.synchronizer.sync(self.config.local_root, self.config.remote_root)

    def deploy_containers(self) -> StageResult:
        return self.deployer.deploy(self.config.app_name, self.config.app_port)

    def configure_proxy(self) -> StageResult:
        return self.proxy.configure(self.config.app_name, self.config.app_port)

    def validate_deployment(self) -> StageResult:
        return self.validator.validate(self.config.app_name, self.config.app_port, self.config.server)

    def teardown(self) -> StageResult:
        return self.cleaner.teardown(self.config.app_name, self.config.remote_root)

    def _run_stage(
        self,
        result: PipelineResult,
        stage: Stage,
        title: str,
        action: Callable[[], StageResult],
    ) -> bool:
        if self.logger:
            self.logger.step(title)
        try:
            outcome = action()
        except RemoteDeployError as e:
            failed = StageResult.failed(
                stage,
                e.category,
                self.credential.redact(e.format_message()),
                output_excerpt=self.credential.redact(e.output_excerpt),
            )
            result.stages.append(failed)
            result.category = e.category
            if self.logger:
                self.logger.log_error(e.message, context=e.context, excerpt=failed.output_excerpt)
            return False

        result.stages.append(outcome)
        if self.logger and outcome.message:
            self.logger.success(outcome.message)
        return True

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
