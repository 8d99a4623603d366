"""CLI entry point for readwise-mcp-server.

Runs the server in the foreground; configuration comes from the environment
(or a local .env file). See config.py for the variables.
"""
import argparse
import sys

import requests
import uvicorn

from config import REQUIRED_KEYS, load_config
from main import VERSION
from tools import SERVER_NAME, tool_names


# ============== Helper Functions ==============

def fetch_health(port: int) -> dict | None:
    """Ask a local server for /health; None when nothing answers."""
    try:
        response = requests.get(f"http://localhost:{port}/health", timeout=3)
        if response.status_code == 200:
            return response.json()
    except (requests.RequestException, ValueError):
        pass
    return None


def report_missing(missing: list[str]):
    print("\n[ERROR] Missing required configuration:")
    for key in missing:
        print(f"  - {key}")
    print("\n  Set them in the environment or in a .env file.")


# ============== Commands ==============

def cmd_start():
    """Start the MCP server in the foreground."""
    config = load_config()

    if not config.is_valid():
        report_missing(config.missing())
        sys.exit(1)

    call_url = f"{config.server_url}/call"
    print("\n" + "=" * 60)
    print(f"  Readwise MCP Server v{VERSION} - Starting")
    print("=" * 60)
    print(f"  Listening: {config.host}:{config.port}")
    print(f"  Tools:     {len(tool_names())}")
    print()
    print("  Endpoints:")
    print(f"    /call  {call_url}")
    print(f"    /mcp   {config.server_url}/mcp")
    print()
    print("  +------------------------------------------------------+")
    print("  |  HOW TO CONNECT YOUR AI CLIENT                       |")
    print("  +------------------------------------------------------+")
    print()
    print(f"  1. Add {call_url} as a remote MCP server")
    print(f"  2. Use OAuth client ID: {config.client_id}")
    print("  3. Use the client secret from OAUTH_CLIENT_SECRET")
    print()
    print("=" * 60)
    print("  Stop:   Ctrl+C")
    print(f"  Status: {SERVER_NAME} status")
    print("=" * 60 + "\n")

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


def cmd_status():
    """Show current status."""
    config = load_config()

    print("\n" + "=" * 50)
    print("  Readwise MCP Server Status")
    print("=" * 50)

    # Config
    print("\n[Config]")
    missing = config.missing()
    for key in REQUIRED_KEYS:
        print(f"  {key + ':':<22}{'missing' if key in missing else 'set'}")
    print(f"  {'Server URL:':<22}{config.server_url}")

    # Server
    print("\n[Server]")
    health = fetch_health(config.port)
    if health:
        print(f"  Status:   Running on port {config.port}")
        print(f"  Version:  {health.get('version')}")
        print(f"  Tools:    {health.get('tools')}")
    else:
        print(f"  Status:   Not running on port {config.port}")

    print("\n" + "=" * 50 + "\n")


def cmd_version():
    """Show version information."""
    print(f"{SERVER_NAME} v{VERSION}")


def cmd_help():
    """Show detailed help."""
    print(f"""
Readwise MCP Server - Readwise and Reader tools over MCP

USAGE:
    {SERVER_NAME} <command>

COMMANDS:
    start       Start the MCP server in the foreground
    status      Show configuration and whether a server is answering
    version     Show version information
    help        Show this help message

CONFIGURATION (environment or .env):
    READWISE_API_KEY        Readwise access token (required)
    OAUTH_CLIENT_ID         OAuth client ID MCP clients log in with (required)
    OAUTH_CLIENT_SECRET     OAuth client secret (required)
    HOST, PORT              Listen address (default 0.0.0.0:3000)
    SERVER_URL              Public base URL (default http://localhost:PORT)
    LOG_LEVEL, LOG_FORMAT   Logging (default INFO, plain; LOG_FORMAT=json for JSON lines)
    READWISE_TIMEOUT        Upstream timeout in seconds (default 30)
    TOKEN_SWEEP_INTERVAL    Expired token sweep period in seconds (default 300)
    OAUTH_BIND_REFRESH_TOKENS  Only accept refresh tokens this server issued

EXAMPLES:
    {SERVER_NAME} start
    {SERVER_NAME} status
""")


# ============== Main Entry Point ==============

def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="Readwise MCP Server - Readwise tools over MCP with OAuth",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Commands:
  start     Start the MCP server (default)
  status    Show current status
  version   Show version
  help      Show detailed help

Examples:
  {SERVER_NAME} start
  {SERVER_NAME} status
"""
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="start",
        choices=["start", "status", "version", "help"],
        help="Command to run (default: start)"
    )
    parser.add_argument("--version", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args()

    if args.version or args.command == "version":
        cmd_version()
    elif args.command == "start":
        cmd_start()
    elif args.command == "status":
        cmd_status()
    elif args.command == "help":
        cmd_help()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
