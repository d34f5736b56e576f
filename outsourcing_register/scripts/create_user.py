"""
Create a user (e.g. a second admin). Run from project root:
  python -m outsourcing_register.scripts.create_user USERNAME PASSWORD "Display Name" [role]
Example:
  python -m outsourcing_register.scripts.create_user jdoe a-secure-password "Jane Doe" editor
"""
import argparse
import sys

from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import RegisterError
from outsourcing_register.core.rbac import Role
from outsourcing_register.schemas.auth import CreateUserInput
from outsourcing_register.services.database_location import get_effective_database_path
from outsourcing_register.services.users import create_user


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an Outsourcing Register user.")
    parser.add_argument("username", help="Username (3-50 chars: letters, numbers, underscores)")
    parser.add_argument("password", help="Password (6-100 chars)")
    parser.add_argument("display_name", help="Name shown in the UI (1-100 chars)")
    parser.add_argument("role", nargs="?", default=Role.VIEWER.value, choices=[r.value for r in Role])
    parser.add_argument("--database", help="Store file (default: configured location)")
    args = parser.parse_args()

    store = Store(args.database or get_effective_database_path()).open()
    try:
        with store.session() as db:
            user = create_user(
                db,
                {
                    "username": args.username.strip(),
                    "password": args.password,
                    "display_name": args.display_name.strip(),
                    "role": args.role,
                },
            )
        print(f"Created user '{user.username}' with role '{user.role.value}'.")
        return 0
    except RegisterError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
