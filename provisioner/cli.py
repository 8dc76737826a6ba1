# provisioner/cli.py
# -*- coding: utf-8 -*-
"""
Command line entry point for the site provisioner.

Domain and contact email are always collected interactively from the
controlling terminal; the flags here only control logging and where
configuration is read from.
"""

import argparse
import logging
import sys
from typing import List, Optional

from common.command_utils import CommandExecutor, log_provisioner
from common.logging_config import setup_logging
from provisioner import config as static_config
from provisioner.config_loader import DEFAULT_CONFIG_FILE, load_app_settings
from provisioner.config_models import AppSettings
from provisioner.orchestrator import ProvisioningOrchestrator, load_all_stages
from provisioner.prompts import TerminalInputSource

SERVICE_NAME = "site_provisioner"

module_logger = logging.getLogger(__name__)


def view_configuration(
    app_config: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Log the effective configuration (CLI > YAML > ENV > defaults)."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_config.symbols

    config_text = f"{symbols.get('info', 'ℹ️')} Current effective configuration values (CLI > YAML > ENV > Defaults):\n\n"
    config_text += f"  Provisioner Version:           {static_config.SCRIPT_VERSION}\n"
    config_text += f"  Log Prefix:                    {app_config.log_prefix}\n"
    config_text += f"  Site Bundle URL:               {app_config.bundle_url}\n"
    config_text += f"  Web Root Base:                 {app_config.www_base_dir}\n"
    config_text += f"  Crontab:                       {app_config.crontab_path}\n"
    config_text += f"  Require Root:                  {app_config.require_root}\n"
    config_text += f"  Input Attempts:                {app_config.max_input_attempts}\n"
    config_text += f"  Reissue Prompt Timeout (s):    {app_config.reissue_prompt_timeout}\n\n"
    config_text += f"  Nginx Config Dir:              {app_config.nginx.conf_dir}\n"
    config_text += f"  Nginx Log Dir:                 {app_config.nginx.log_dir}\n\n"
    config_text += f"  acme.sh Home:                  {app_config.acme.home}\n"
    config_text += f"  Certificate Base Dir:          {app_config.acme.ssl_base_dir}\n"
    config_text += f"  Key Length:                    {app_config.acme.keylength}\n"
    config_text += f"  Reuse Certificates Younger Than: {app_config.acme.fresh_days} day(s)\n"
    config_text += f"  Renewal Schedule:              {app_config.acme.renewal_schedule}\n\n"
    config_text += f"  Firewall TCP Ports:            {', '.join(str(p) for p in app_config.firewall.tcp_ports)}\n"

    log_provisioner(config_text, "info", logger_to_use, app_config)


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Deploy a static site behind Nginx with a Let's Encrypt certificate.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help="Path to a YAML configuration file.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write JSON log records to this file.",
    )
    parser.add_argument(
        "--log-prefix",
        default=None,
        help="Override the log message prefix.",
    )
    parser.add_argument(
        "--view-config",
        action="store_true",
        help="Show the effective configuration and exit.",
    )
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the site provisioner."""
    parsed_args = parse_args(args)
    logger = setup_logging(
        SERVICE_NAME,
        log_level="DEBUG" if parsed_args.verbose else None,
        enable_file=bool(parsed_args.log_file),
        log_file_path=parsed_args.log_file,
    )

    app_settings = load_app_settings(parsed_args, parsed_args.config, logger)

    if parsed_args.view_config:
        view_configuration(app_settings, logger)
        return 0

    log_provisioner(
        f"{app_settings.symbols['rocket']} "
        f"Site provisioner V{static_config.SCRIPT_VERSION} starting.",
        "info",
        logger,
        app_settings,
    )
    load_all_stages(logger)

    orchestrator = ProvisioningOrchestrator(
        app_settings,
        CommandExecutor(app_settings, logger),
        TerminalInputSource(app_settings.tty_path, logger),
        logger,
    )
    try:
        return orchestrator.run()
    except KeyboardInterrupt:
        log_provisioner(
            f"{app_settings.symbols['warning']} Interrupted by user.",
            "warning",
            logger,
            app_settings,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
