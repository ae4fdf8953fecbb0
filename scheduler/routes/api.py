from flask import Blueprint, current_app, jsonify, request

from shared.errors import ValidationError

bp = Blueprint('api', __name__, url_prefix='/api/v1')


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _scores(data: dict):
    missing = [k for k in ('team1_score', 'team2_score') if k not in data]
    if missing:
        raise ValidationError(f"Missing {', '.join(missing)}", fields=missing)
    return data['team1_score'], data['team2_score']


# ==================== Tournaments ====================

@bp.route('/tournaments', methods=['GET'])
def list_tournaments():
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)
    tournaments = current_app.registry.list_tournaments(limit=limit, offset=offset)
    return jsonify({
        'tournaments': [t.to_dict() for t in tournaments],
        'count': len(tournaments),
        'limit': limit,
        'offset': offset
    })


@bp.route('/tournaments', methods=['POST'])
def create_tournament():
    data = _json_body()
    name = data.pop('name', None)
    data.setdefault('bracket_size', current_app.config['DEFAULT_BRACKET_SIZE'])
    data.setdefault('number_of_qualifying_rounds', current_app.config['DEFAULT_QUALIFYING_ROUNDS'])
    tournament = current_app.registry.create_tournament(name, **data)
    return jsonify(tournament.to_dict()), 201


@bp.route('/tournaments/<tournament_id>', methods=['GET'])
def get_tournament(tournament_id: str):
    return jsonify(current_app.registry.get_tournament(tournament_id).to_dict())


@bp.route('/tournaments/<tournament_id>', methods=['PATCH'])
def update_tournament(tournament_id: str):
    tournament = current_app.registry.update_tournament(tournament_id, **_json_body())
    return jsonify(tournament.to_dict())


@bp.route('/tournaments/<tournament_id>', methods=['DELETE'])
def delete_tournament(tournament_id: str):
    current_app.registry.delete_tournament(tournament_id)
    return jsonify({'message': 'Tournament deleted'})


@bp.route('/tournaments/<tournament_id>/settings', methods=['GET'])
def get_settings(tournament_id: str):
    settings = current_app.registry.get_settings(tournament_id)
    return jsonify({
        'pairing_method': settings.pairing_discipline.value,
        'number_of_courts': settings.number_of_courts,
        'number_of_qualifying_rounds': settings.number_of_qualifying_rounds,
        'region_avoidance': settings.region_avoidance,
        'has_consolante': settings.has_consolante,
        'advance_all': settings.advance_all,
        'advance_count': settings.advance_count,
        'bracket_size': settings.bracket_size,
        'max_teams': settings.max_teams,
    })


# ==================== Teams ====================

@bp.route('/tournaments/<tournament_id>/teams', methods=['GET'])
def list_teams(tournament_id: str):
    teams = current_app.registry.list_teams(tournament_id)
    return jsonify({
        'teams': [t.to_dict() for t in teams],
        'count': len(teams)
    })


@bp.route('/tournaments/<tournament_id>/teams', methods=['POST'])
def add_team(tournament_id: str):
    data = _json_body()
    team = current_app.registry.add_team(
        tournament_id,
        captain=data.get('captain'),
        player2=data.get('player2'),
        player3=data.get('player3'),
        region=data.get('region'),
        club=data.get('club'),
    )
    return jsonify(team.to_dict()), 201


@bp.route('/tournaments/<tournament_id>/teams/import', methods=['POST'])
def import_teams(tournament_id: str):
    teams = _json_body().get('teams')
    if not isinstance(teams, list) or not teams:
        raise ValidationError("'teams' must be a non-empty list", field='teams')
    created = current_app.registry.import_teams(tournament_id, teams)
    return jsonify({
        'teams': [t.to_dict() for t in created],
        'count': len(created)
    }), 201


@bp.route('/tournaments/<tournament_id>/teams', methods=['DELETE'])
def delete_all_teams(tournament_id: str):
    deleted = current_app.registry.delete_all_teams(tournament_id)
    return jsonify({'message': 'Teams deleted', 'deleted': deleted})


@bp.route('/teams/<team_id>', methods=['PATCH'])
def update_team(team_id: str):
    team = current_app.registry.update_team(team_id, **_json_body())
    return jsonify(team.to_dict())


@bp.route('/teams/<team_id>', methods=['DELETE'])
def delete_team(team_id: str):
    current_app.registry.delete_team(team_id)
    return jsonify({'message': 'Team deleted'})


@bp.route('/tournaments/<tournament_id>/standings', methods=['GET'])
def get_standings(tournament_id: str):
    standings = current_app.registry.ranked_standings(tournament_id)
    return jsonify({'standings': [s.to_dict() for s in standings]})


# ==================== Qualifying ====================

@bp.route('/tournaments/<tournament_id>/rounds', methods=['GET'])
def list_rounds(tournament_id: str):
    rounds = current_app.qualifying.list_rounds(tournament_id)
    return jsonify({'rounds': [r.to_dict(include_games=True) for r in rounds]})


@bp.route('/tournaments/<tournament_id>/rounds', methods=['POST'])
def generate_next_round(tournament_id: str):
    qualifying_round = current_app.qualifying.generate_next_round(tournament_id)
    return jsonify(qualifying_round.to_dict(include_games=True)), 201


@bp.route('/tournaments/<tournament_id>/rounds/all', methods=['POST'])
def generate_all_remaining_rounds(tournament_id: str):
    rounds = current_app.qualifying.generate_all_remaining_rounds(tournament_id)
    return jsonify({'rounds': [r.to_dict(include_games=True) for r in rounds]}), 201


@bp.route('/tournaments/<tournament_id>/rounds', methods=['DELETE'])
def delete_all_rounds(tournament_id: str):
    deleted = current_app.qualifying.delete_all_rounds(tournament_id)
    return jsonify({'message': 'Rounds deleted', 'deleted': deleted})


@bp.route('/rounds/<round_id>', methods=['GET'])
def get_round(round_id: str):
    return jsonify(current_app.qualifying.get_round(round_id).to_dict(include_games=True))


@bp.route('/rounds/<round_id>/complete', methods=['POST'])
def complete_round(round_id: str):
    qualifying_round = current_app.qualifying.complete_round(round_id)
    return jsonify(qualifying_round.to_dict())


@bp.route('/games/<game_id>/score', methods=['PUT'])
def submit_game_score(game_id: str):
    team1_score, team2_score = _scores(_json_body())
    game = current_app.qualifying.submit_game_score(game_id, team1_score, team2_score)
    return jsonify(game.to_dict())


# ==================== Brackets ====================

@bp.route('/tournaments/<tournament_id>/brackets', methods=['GET'])
def list_brackets(tournament_id: str):
    brackets = current_app.brackets.list_brackets(tournament_id)
    return jsonify({'brackets': [b.to_dict(include_matches=True) for b in brackets]})


@bp.route('/tournaments/<tournament_id>/brackets', methods=['POST'])
def generate_brackets(tournament_id: str):
    brackets = current_app.brackets.generate_brackets(tournament_id)
    return jsonify({'brackets': [b.to_dict(include_matches=True) for b in brackets]}), 201


@bp.route('/tournaments/<tournament_id>/brackets', methods=['DELETE'])
def delete_all_brackets(tournament_id: str):
    deleted = current_app.brackets.delete_all_brackets(tournament_id)
    return jsonify({'message': 'Brackets deleted', 'deleted': deleted})


@bp.route('/brackets/<bracket_id>', methods=['GET'])
def get_bracket(bracket_id: str):
    return jsonify(current_app.brackets.get_bracket(bracket_id).to_dict(include_matches=True))


@bp.route('/matches/<match_id>/score', methods=['PUT'])
def submit_match_score(match_id: str):
    team1_score, team2_score = _scores(_json_body())
    match = current_app.brackets.submit_match_score(match_id, team1_score, team2_score)
    return jsonify(match.to_dict())


# ==================== Events ====================

@bp.route('/tournaments/<tournament_id>/events', methods=['GET'])
def recent_events(tournament_id: str):
    current_app.registry.get_tournament(tournament_id)
    count = request.args.get('count', 50, type=int)
    events = current_app.pubsub.get_recent_events(tournament_id, count)
    return jsonify({'events': [e.to_dict() for e in events]})
