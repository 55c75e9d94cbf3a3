"""
Infinity KB auth CLI — local tool for the session and access-control core.

The login persists in a token file between invocations, so commands behave
like one signed-in client:

Usage:
    infinity-kb seed
    infinity-kb login admin@example.com --password admin123 --remember
    infinity-kb whoami
    infinity-kb stats
    infinity-kb requests --status pending
    infinity-kb approve <request_id> --notes "ok"
    infinity-kb logout
    infinity-kb sweep
"""
import argparse
import getpass
import json
import sys
from typing import Optional

from .app import Application
from .auth.errors import OperationResult
from .auth.models import RequestStatus
from .auth.service import LoginCredentials, RegisterCredentials
from .config import AuthConfig, load_config
from .observability import configure_logging, get_logger

logger = get_logger(__name__)


class AuthCLI:
    """Command handlers over one Application instance."""

    def __init__(self, config: AuthConfig, autoseed: bool = True):
        self.app = Application(config)
        # no sweeper thread here; "sweep" runs cleanup on demand
        if autoseed:
            self.app.start(run_sweeper=False)

    def close(self) -> None:
        self.app.shutdown()

    @staticmethod
    def _report(result: OperationResult, ok_message: str) -> int:
        if result.success:
            print(ok_message)
            return 0
        print(f"Error [{result.error_code.value}]: {result.error}")
        return 1

    def cmd_seed(self) -> int:
        result = self.app.seed()
        if not result.created_anything:
            print("Demo data already present.")
            return 0
        print(f"Organization: {result.organization_id}")
        for email in result.created_users:
            print(f"  user    {email}")
        for name in result.created_projects:
            print(f"  project {name}")
        return 0

    def cmd_sweep(self) -> int:
        removed = self.app.sessions.cleanup_expired_sessions()
        print(f"Removed {removed} expired session(s).")
        return 0

    def cmd_login(self, email: str, password: Optional[str], remember: bool) -> int:
        if password is None:
            password = getpass.getpass("Password: ")
        result = self.app.auth.login(LoginCredentials(
            email=email, password=password, remember_me=remember,
        ))
        if not result.success:
            return self._report(result, "")
        print(f"Signed in as {result.user.email} ({result.user.role.value})")
        print(f"Organization: {result.organization.name}")
        print(f"Session expires: {result.session.expires_at.isoformat()}")
        return 0

    def cmd_register(
        self,
        name: str,
        email: str,
        password: Optional[str],
        organization_name: Optional[str],
        organization_domain: Optional[str],
        invite_code: Optional[str],
    ) -> int:
        if password is None:
            password = getpass.getpass("Password: ")
            confirm = getpass.getpass("Confirm password: ")
        else:
            confirm = password
        result = self.app.auth.register(RegisterCredentials(
            name=name,
            email=email,
            password=password,
            confirm_password=confirm,
            organization_name=organization_name,
            organization_domain=organization_domain,
            invite_code=invite_code,
        ))
        if not result.success:
            return self._report(result, "")
        print(f"Registered {result.user.email} as {result.user.role.value} "
              f"of {result.organization.name}")
        print(f"Invite code: {result.organization.invite_code}")
        return 0

    def cmd_logout(self) -> int:
        self.app.auth.logout()
        print("Signed out.")
        return 0

    def cmd_whoami(self) -> int:
        user = self.app.auth.get_current_user()
        if user is None:
            print("Not signed in.")
            return 1
        organization = self.app.auth.get_current_organization()
        session = self.app.auth.get_current_session()
        print(f"User:         {user.name} <{user.email}>")
        print(f"Role:         {user.role.value}")
        if organization is not None:
            print(f"Organization: {organization.name} ({organization.plan.value})")
        if session is not None:
            print(f"Expires:      {session.expires_at.isoformat()}")
        return 0

    def cmd_stats(self) -> int:
        if self.app.auth.get_current_user() is None:
            print("Not signed in.")
            return 1
        stats = self.app.organizations.get_organization_stats()
        print(json.dumps(stats.model_dump(), indent=2))
        return 0

    def cmd_members(self) -> int:
        members = self.app.organizations.get_members()
        if not members:
            print("No members (are you signed in?).")
            return 1
        for user in members:
            print(f"  {user.id}  {user.role.value:<11} {user.email}")
        return 0

    def cmd_projects(self, include_archived: bool) -> int:
        projects = self.app.organizations.get_projects(include_archived=include_archived)
        if not projects:
            print("No projects.")
            return 0
        for project in projects:
            print(f"  {project.id}  {project.status.value:<8} {project.name}")
        return 0

    def cmd_requests(self, status: Optional[str]) -> int:
        requests = self.app.organizations.get_access_requests(
            RequestStatus(status) if status else None
        )
        if not requests:
            print("No access requests.")
            return 0
        for request in requests:
            print(f"  {request.id}  {request.status.value:<8} "
                  f"{request.request_type.value:<16} user={request.user_id} "
                  f"project={request.project_id or '-'}")
        return 0

    def cmd_review(self, request_id: str, approve: bool, notes: Optional[str]) -> int:
        if approve:
            result = self.app.organizations.approve_access_request(request_id, notes)
            return self._report(result, f"Approved {request_id}")
        result = self.app.organizations.reject_access_request(request_id, notes)
        return self._report(result, f"Rejected {request_id}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infinity-kb",
        description="Infinity KB auth CLI — sessions, organizations and access requests",
    )
    parser.add_argument(
        "--env-file", default=None,
        help="Path to a .env file (default: ./.env if present)",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("seed", help="Create demo organization, users and projects")
    subparsers.add_parser("sweep", help="Remove expired sessions")

    login_p = subparsers.add_parser("login", help="Sign in")
    login_p.add_argument("email")
    login_p.add_argument("--password", default=None, help="Prompted for if omitted")
    login_p.add_argument("--remember", action="store_true", help="Long-lived session")

    reg_p = subparsers.add_parser("register", help="Create an account")
    reg_p.add_argument("--name", required=True)
    reg_p.add_argument("--email", required=True)
    reg_p.add_argument("--password", default=None, help="Prompted for if omitted")
    reg_p.add_argument("--org-name", default=None, help="Create a new organization")
    reg_p.add_argument("--org-domain", default=None)
    reg_p.add_argument("--invite-code", default=None, help="Join an existing organization")

    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in user")
    subparsers.add_parser("stats", help="Organization statistics")
    subparsers.add_parser("members", help="List organization members")

    proj_p = subparsers.add_parser("projects", help="List projects")
    proj_p.add_argument("--all", action="store_true", help="Include archived projects")

    req_p = subparsers.add_parser("requests", help="List access requests")
    req_p.add_argument("--status", choices=[s.value for s in RequestStatus], default=None)

    for name in ("approve", "reject"):
        review_p = subparsers.add_parser(name, help=f"{name.capitalize()} an access request")
        review_p.add_argument("request_id")
        review_p.add_argument("--notes", default=None)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    config = load_config(args.env_file)
    configure_logging(log_level=config.log_level, json_output=config.log_json)
    logger.debug("cli_command", command=args.command, backend=config.storage_backend)

    cli = AuthCLI(config, autoseed=args.command != "seed")
    try:
        if args.command == "seed":
            return cli.cmd_seed()
        elif args.command == "sweep":
            return cli.cmd_sweep()
        elif args.command == "login":
            return cli.cmd_login(args.email, args.password, args.remember)
        elif args.command == "register":
            return cli.cmd_register(
                args.name, args.email, args.password,
                args.org_name, args.org_domain, args.invite_code,
            )
        elif args.command == "logout":
            return cli.cmd_logout()
        elif args.command == "whoami":
            return cli.cmd_whoami()
        elif args.command == "stats":
            return cli.cmd_stats()
        elif args.command == "members":
            return cli.cmd_members()
        elif args.command == "projects":
            return cli.cmd_projects(args.all)
        elif args.command == "requests":
            return cli.cmd_requests(args.status)
        elif args.command in ("approve", "reject"):
            return cli.cmd_review(args.request_id, args.command == "approve", args.notes)
        parser.print_help()
        return 2
    finally:
        cli.close()


if __name__ == "__main__":
    sys.exit(main())
