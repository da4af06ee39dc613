#!/usr/bin/env python3
"""
Taxonomy term maintenance from the command line.

Subcommands:
- list VID: print every term in a vocabulary
- add VID NAME [NAME ...]: resolve-or-create each name, printing its tid
- delete VID NAME: delete the first term with that name

Usage:
    python -m ect_cli.manage_terms list tags
    python -m ect_cli.manage_terms add tags "Open Data" Python [--dry-run] [--verbose]
    python -m ect_cli.manage_terms delete tags Python
"""

import argparse
import logging
import sys

from sqlalchemy.orm import Session

from ect_core.config import settings
from ect_core.db import Base, engine, SessionLocal
from ect_core.messenger import Messenger
from ect_api.crud import EntityTools, get_entity_tools, load_terms


def list_terms(tools: EntityTools, vocabulary_id: str) -> int:
    terms = tools.get_vocabulary_terms_as_dict(vocabulary_id)
    if not terms:
        print(f"No terms in {vocabulary_id}")
        return 0
    for tid, name in terms.items():
        print(f"  {tid}\t{name}")
    print(f"{len(terms)} terms in {vocabulary_id}")
    return len(terms)


def add_terms(tools: EntityTools, vocabulary_id: str, names: list[str],
              dry_run: bool = False, verbose: bool = False) -> dict[str, int | None]:
    """
    Resolve-or-create every name in the vocabulary.

    In dry-run mode nothing is written; names that would be created map to None.

    Returns:
        {name: tid}
    """
    if dry_run:
        result = {}
        for name in names:
            tid = tools.get_term_id(vocabulary_id, name)
            result[name] = tid or None
            if verbose:
                action = f"exists (tid={tid})" if tid else "would be created"
                print(f"  {name}: {action}")
        return result
    result = load_terms(tools, vocabulary_id, names)
    if verbose:
        for name, tid in result.items():
            print(f"  {name}: tid={tid}")
    return result


def delete_term(tools: EntityTools, vocabulary_id: str, name: str, dry_run: bool = False) -> bool:
    if dry_run:
        return bool(tools.get_term_id(vocabulary_id, name))
    return tools.delete_term(vocabulary_id, name)


def run(session: Session, args: argparse.Namespace) -> int:
    messenger = Messenger()
    tools = get_entity_tools(session, messenger)
    if args.command == "list":
        list_terms(tools, args.vocabulary)
    elif args.command == "add":
        result = add_terms(tools, args.vocabulary, args.names, dry_run=args.dry_run, verbose=args.verbose)
        verb = "Would resolve" if args.dry_run else "Resolved"
        print(f"{verb} {len(result)} terms in {args.vocabulary}")
    elif args.command == "delete":
        deleted = delete_term(tools, args.vocabulary, args.name, dry_run=args.dry_run)
        if not deleted:
            print(f"Not found: {args.name}")
        else:
            print(f"{'Would delete' if args.dry_run else 'Deleted'}: {args.name}")
    for message_type, messages in messenger.delete_all().items():
        for message in messages:
            print(f"[{message_type}] {message}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage taxonomy terms")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    parser.add_argument("--verbose", action="store_true", help="Print detailed information")
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List the terms of a vocabulary")
    p_list.add_argument("vocabulary")

    p_add = sub.add_parser("add", help="Resolve or create terms")
    p_add.add_argument("vocabulary")
    p_add.add_argument("names", nargs="+")

    p_delete = sub.add_parser("delete", help="Delete a term by name")
    p_delete.add_argument("vocabulary")
    p_delete.add_argument("name")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        code = run(session, args)
        if not args.dry_run:
            session.commit()
        return code
    except Exception as e:
        session.rollback()
        print(f"ERROR: {e}", file=sys.stderr)
        raise
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
