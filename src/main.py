# Command line entry point for the bracket engine

import argparse
import logging
import os
import random
import sys

import yaml
from brackets.advancement import force_advance_round
from brackets.errors import BracketError
from brackets.formats import FORMAT_NAMES, generate, get_format_name
from brackets.models import Bracket
from brackets.progression import apply_result, revert_result
from brackets.scores import format_score
from brackets.standings import find_champion, rank_standings


def load_players(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        players = yaml.safe_load(file)
    if not isinstance(players, list):
        raise BracketError(f"{file_path} must contain a YAML list of player names")
    return players


def load_bracket(file_path):
    if not os.path.exists(file_path):
        raise BracketError(f"Bracket file not found: {file_path}")
    with open(file_path, mode='r', encoding='utf-8') as file:
        try:
            data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise BracketError(f"Failed to parse {file_path}: {e}") from e
    return Bracket.from_dict(data)


def save_bracket(bracket, file_path):
    with open(file_path, mode='w', encoding='utf-8') as file:
        yaml.dump(bracket.to_dict(), file, default_flow_style=False, allow_unicode=True, sort_keys=False)


def print_bracket(bracket):
    print(f"{get_format_name(bracket.format)}: {bracket.total_rounds} rounds, {bracket.total_matches} matches")
    for position, round_ in enumerate(bracket.rounds):
        label = f"\n{round_.name}"
        if round_.section:
            label += f" [{round_.section}]"
        print(label)
        matches = bracket.round_matches(position)
        if not matches:
            print("  (not paired yet)")
        for match in matches:
            if match.is_void:
                continue
            player1 = match.player1 or ('BYE' if 1 in match.bye_slots else 'TBD')
            player2 = match.player2 or ('BYE' if 2 in match.bye_slots else 'TBD')
            line = f"  {match.match_id}: {player1} vs {player2}"
            if match.winner:
                line += f" -> {match.winner}"
                if match.score:
                    line += f" ({format_score(match.score)})"
            print(line)

    if bracket.standings is not None:
        print("\nStandings:")
        for row in rank_standings(bracket.standings):
            print(f"  {row['rank']}. {row['player']} - {row['points']} pts "
                  f"({row['wins']}W/{row['losses']}L, Buchholz {row['buchholz']})")

    champion = find_champion(bracket)
    if champion:
        print(f"\nChampion: {champion}")


def build_parser():
    parser = argparse.ArgumentParser(
        description='Generate tournament brackets and record match results'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    generate_parser = subparsers.add_parser('generate', help='Generate a new bracket')
    generate_parser.add_argument('format', help=f"One of: {', '.join(FORMAT_NAMES)}")
    generate_parser.add_argument('players_file', help='YAML list of player names')
    generate_parser.add_argument('-o', '--output', help='Bracket file to write (default: print only)')
    generate_parser.add_argument('--rounds', type=int, help='Number of Swiss rounds')
    generate_parser.add_argument('--seed', type=int, help='Random seed for the Swiss first round')

    show_parser = subparsers.add_parser('show', help='Print a bracket file')
    show_parser.add_argument('file')

    apply_parser = subparsers.add_parser('apply', help='Record the winner of a match')
    apply_parser.add_argument('file')
    apply_parser.add_argument('match_id')
    apply_parser.add_argument('winner')
    apply_parser.add_argument('--score', help="Set score from player1's side, e.g. '6-4 7-5'")

    undo_parser = subparsers.add_parser('undo', help='Undo the last result (or one match)')
    undo_parser.add_argument('file')
    undo_parser.add_argument('--match-id', help='Match whose result to undo')

    advance_parser = subparsers.add_parser('advance', help='Pair the next Swiss round')
    advance_parser.add_argument('file')

    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else os.environ.get('BRACKET_LOG_LEVEL', 'WARNING').upper(),
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        if args.command == 'generate':
            rng = random.Random(args.seed) if args.seed is not None else None
            bracket = generate(args.format, load_players(args.players_file), rounds=args.rounds, rng=rng)
            if args.output:
                save_bracket(bracket, args.output)
                print(f"Bracket written to {args.output}")
            print_bracket(bracket)
            return 0

        bracket = load_bracket(args.file)
        if args.command == 'show':
            print_bracket(bracket)
            return 0
        elif args.command == 'apply':
            bracket = apply_result(bracket, {
                'match_id': args.match_id, 'winner': args.winner, 'score': args.score,
            })
        elif args.command == 'undo':
            if args.match_id:
                bracket = revert_result(bracket, {'match_id': args.match_id})
            else:
                bracket = revert_result(bracket)
        elif args.command == 'advance':
            bracket = force_advance_round(bracket)
        save_bracket(bracket, args.file)
        print_bracket(bracket)
        return 0
    except BracketError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
