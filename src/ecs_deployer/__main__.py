"""Allow ``python -m ecs_deployer``."""

from ecs_deployer.cli.main import main

main()
