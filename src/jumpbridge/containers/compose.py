"""Docker Compose command construction."""

from dataclasses import dataclass

from jumpbridge.config.schema import BridgeSettings


@dataclass(frozen=True)
class ComposeCommand:
    """Builds ``docker compose`` argument lists for one project."""

    docker_bin: str = "docker"
    compose_file: str | None = None
    project_dir: str | None = None

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> "ComposeCommand":
        return cls(
            docker_bin=settings.docker_bin,
            compose_file=settings.compose_file,
            project_dir=settings.project_dir,
        )

    def base(self) -> list[str]:
        args = [self.docker_bin, "compose"]
        if self.project_dir:
            args.extend(["--project-directory", self.project_dir])
        if self.compose_file:
            args.extend(["-f", self.compose_file])
        return args

    def up(self, *services: str) -> list[str]:
        return [*self.base(), "up", "-d", *services]

    def ps_running(self) -> list[str]:
        return [*self.base(), "ps", "--status", "running", "--services"]

    def exec(self, service: str, *command: str, tty: bool = False) -> list[str]:
        args = [*self.base(), "exec"]
        if not tty:
            args.append("-T")
        return [*args, service, *command]

    def version(self) -> list[str]:
        return [*self.base(), "version"]
