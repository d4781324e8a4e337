# Replay a recorded list of match results through the rotation

import sys
import yaml
from core.rotation import RotationError, initialize, draw_next_match, record_result
from core.models import DRAW

def load_results(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}
    if not isinstance(data, dict) or 'total_teams' not in data:
        raise ValueError(f"{file_path} must define total_teams and results")
    return data['total_teams'], data.get('results') or []

def replay(total_teams, results):
    """Play each result in order and return the final session."""
    session = initialize(total_teams)
    for result in results:
        session = draw_next_match(session)
        session = record_result(session, result)
    return session

def describe_match(match):
    if match.result == DRAW:
        return f"Match {match.match_number}: Team {match.team1} vs Team {match.team2} - Draw"
    return f"Match {match.match_number}: Team {match.team1} vs Team {match.team2} - Team {match.winner} wins"

def main():
    if len(sys.argv) < 2:
        print("Usage: python src/main.py RESULTS_FILE", file=sys.stderr)
        sys.exit(1)

    try:
        total_teams, results = load_results(sys.argv[1])
        session = replay(total_teams, results)
    except (OSError, ValueError, yaml.YAMLError, RotationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"--- {session.total_teams} teams, {session.match_counter} matches ---")
    for match in session.match_history:
        print(f"  {describe_match(match)}")

    print("\nWaiting queue (next to play first):")
    print("  " + ", ".join(f"Team {team}" for team in session.waiting_queue))

if __name__ == '__main__':
    main()
