import uuid

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import OperationalError

from app.models import AuditLog, GoalScorer, Match, Player, Team
from app.services import match_results
from app.services.match_results import GoalLine, submit_result
from tests.testkit import new_match, seed_world


def submit(db, world, team, a, b, lines, mvp=None, match=None):
    return submit_result(
        db,
        match_id=(match or world.match).id,
        team_a_score=a,
        team_b_score=b,
        goal_scorers=lines,
        mvp_player_id=mvp.id if mvp is not None else None,
        submitting_team_id=team.id,
    )


def fresh(db, model, row_id):
    return db.get(model, row_id, populate_existing=True)


def goal_rows(db, match_id, team_id):
    rows = db.execute(
        sa.select(GoalScorer).where(GoalScorer.match_id == match_id, GoalScorer.team_id == team_id)
    ).scalars().all()
    return {r.player_id: r.goals for r in rows}


def three_one(w):
    # P1: 2 and P2: 1 for team A, P3: 1 for team B
    return [w.line(w.p1, 2), w.line(w.p2, 1), w.line(w.p3, 1)]


def test_first_submission_awaits_opponent(db, world):
    out = submit(db, world, world.team_a, 3, 1, three_one(world))

    assert out.error is None
    m = out.data
    assert m.status == "confirmed"
    assert m.verified_result is False
    assert m.team_a_submitted is True
    assert m.team_a_submitted_at is not None
    assert m.team_b_submitted is False
    assert (m.team_a_score, m.team_b_score) == (3, 1)

    # only the submitting team's own rows are stored
    assert goal_rows(db, m.id, world.team_a.id) == {world.p1.id: 2, world.p2.id: 1}
    assert goal_rows(db, m.id, world.team_b.id) == {}
    assert fresh(db, Team, world.team_a.id).wins == 0


def test_repeated_first_submission_is_idempotent(db, world):
    first = submit(db, world, world.team_a, 3, 1, three_one(world))
    second = submit(db, world, world.team_a, 3, 1, three_one(world))

    assert first.error is None and second.error is None
    m = fresh(db, Match, world.match.id)
    assert m.status == "confirmed"
    assert m.verified_result is False
    assert goal_rows(db, m.id, world.team_a.id) == {world.p1.id: 2, world.p2.id: 1}
    count = db.execute(sa.select(sa.func.count()).select_from(GoalScorer)).scalar_one()
    assert count == 2


def test_resubmission_replaces_own_rows(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    out = submit(db, world, world.team_a, 3, 1, [world.line(world.p1, 3), world.line(world.p4, 1)])

    assert out.error is None
    assert goal_rows(db, world.match.id, world.team_a.id) == {world.p1.id: 3}


def test_duplicate_entries_are_merged(db, world):
    lines = [world.line(world.p1, 1), world.line(world.p1, 1), world.line(world.p2, 1), world.line(world.p3, 1)]
    out = submit(db, world, world.team_a, 3, 1, lines)

    assert out.error is None
    assert goal_rows(db, world.match.id, world.team_a.id) == {world.p1.id: 2, world.p2.id: 1}


def test_confirming_submission_verifies_and_applies_stats(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    out = submit(db, world, world.team_b, 3, 1, three_one(world))

    assert out.error is None
    m = out.data
    assert m.status == "completed"
    assert m.verified_result is True
    assert m.team_b_submitted is True
    assert m.stats_applied_at is not None
    assert m.mvp_player_id == world.p1.id

    team_a = fresh(db, Team, world.team_a.id)
    team_b = fresh(db, Team, world.team_b.id)
    assert (team_a.wins, team_a.losses, team_a.draws) == (1, 0, 0)
    assert (team_b.wins, team_b.losses, team_b.draws) == (0, 1, 0)
    assert team_a.rating == pytest.approx(5.3)
    assert team_b.rating == pytest.approx(4.7)
    assert team_a.total_goals == 3
    assert team_b.total_goals == 1
    assert team_a.total_mvps == 1
    assert team_b.total_mvps == 0

    p1, p2, p3, p4 = (fresh(db, Player, p.id) for p in (world.p1, world.p2, world.p3, world.p4))
    assert p1.rating == pytest.approx(5.8)
    assert (p1.goals, p1.mvps) == (2, 1)
    assert p2.rating == pytest.approx(5.3)
    assert p2.goals == 1
    assert p3.rating == pytest.approx(5.3)
    assert p3.goals == 1
    assert p4.rating == pytest.approx(5.0)

    actions = db.execute(
        sa.select(AuditLog.action).where(AuditLog.entity_id == str(m.id))
    ).scalars().all()
    assert actions.count("result_submitted") == 2
    assert actions.count("result_verified") == 1
    assert actions.count("stats_applied") == 1


def test_team_b_may_report_first(db, world):
    first = submit(db, world, world.team_b, 0, 2, [world.line(world.p3, 2)])
    assert first.error is None
    assert first.data.team_b_submitted is True
    assert first.data.status == "confirmed"

    out = submit(db, world, world.team_a, 0, 2, [world.line(world.p3, 2)])
    assert out.error is None
    assert out.data.verified_result is True
    assert fresh(db, Team, world.team_b.id).wins == 1
    assert fresh(db, Team, world.team_a.id).losses == 1


def test_stats_apply_exactly_once(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    submit(db, world, world.team_b, 3, 1, three_one(world))

    for team in (world.team_a, world.team_b):
        out = submit(db, world, team, 3, 1, three_one(world))
        assert out.error.kind == match_results.ALREADY_VERIFIED
        assert out.data is not None
        assert out.data.verified_result is True

    assert fresh(db, Team, world.team_a.id).wins == 1
    assert fresh(db, Team, world.team_a.id).rating == pytest.approx(5.3)
    assert fresh(db, Player, world.p1.id).mvps == 1
    assert fresh(db, Player, world.p1.id).goals == 2


def test_verified_rows_are_frozen(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    submit(db, world, world.team_b, 3, 1, three_one(world))

    out = submit(db, world, world.team_a, 3, 1, [world.line(world.p2, 3), world.line(world.p3, 1)])
    assert out.error.kind == match_results.ALREADY_VERIFIED
    assert goal_rows(db, world.match.id, world.team_a.id) == {world.p1.id: 2, world.p2.id: 1}


def test_confirming_with_different_score_is_rejected(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    out = submit(db, world, world.team_b, 2, 1, [world.line(world.p1, 2), world.line(world.p3, 1)])

    assert out.data is None
    assert out.error.kind == match_results.SCORES_DO_NOT_MATCH
    m = fresh(db, Match, world.match.id)
    assert m.verified_result is False
    assert m.status == "confirmed"
    assert m.team_b_submitted is False
    assert (m.team_a_score, m.team_b_score) == (3, 1)
    assert goal_rows(db, m.id, world.team_b.id) == {}
    assert fresh(db, Team, world.team_a.id).wins == 0


def test_scorer_total_must_equal_score(db, world):
    out = submit(db, world, world.team_a, 3, 1, [world.line(world.p1, 2), world.line(world.p3, 1)])

    assert out.error.kind == match_results.SCORE_MISMATCH
    m = fresh(db, Match, world.match.id)
    assert m.status == "pending"
    assert m.team_a_submitted is False
    assert m.team_a_score is None
    assert goal_rows(db, m.id, world.team_a.id) == {}


def test_confirming_total_uses_opponent_rows(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    # team B credits its own scorer twice; with team A's stored 3 goals that is 5 for a 3-1 match
    out = submit(db, world, world.team_b, 3, 1, [world.line(world.p1, 2), world.line(world.p3, 2)])

    assert out.error.kind == match_results.SCORE_MISMATCH
    assert fresh(db, Match, world.match.id).verified_result is False


def test_unknown_team_is_invalid_party(db, world):
    outsider = Team(id=uuid.uuid4(), name="Outsiders", captain_id=world.captain_a.id)
    db.add(outsider)
    db.commit()

    out = submit(db, world, outsider, 3, 1, three_one(world))
    assert out.error.kind == match_results.INVALID_PARTY
    assert fresh(db, Match, world.match.id).status == "pending"


def test_unknown_match(db, world):
    out = submit_result(
        db, uuid.uuid4(), 1, 0, [world.line(world.p1, 1)], None, world.team_a.id,
    )
    assert out.error.kind == match_results.MATCH_NOT_FOUND
    assert out.data is None


@pytest.mark.parametrize("a, b", [(-1, 2), (1.5, 0), (True, 0)])
def test_scores_must_be_non_negative_integers(db, world, a, b):
    out = submit(db, world, world.team_a, a, b, [])
    assert out.error.kind == match_results.INVALID_SUBMISSION


def test_scorer_from_third_team_rejected(db, world):
    lines = [GoalLine(player_id=world.p1.id, team_id=uuid.uuid4(), goals=1)]
    out = submit(db, world, world.team_a, 1, 0, lines)
    assert out.error.kind == match_results.INVALID_SUBMISSION


def test_mvp_must_be_involved_in_match(db, world):
    stranger = Player(profile_id=world.captain_a.id)
    db.add(stranger)
    db.commit()

    out = submit(db, world, world.team_a, 3, 1, three_one(world), mvp=stranger)
    assert out.error.kind == match_results.INVALID_SUBMISSION


def test_cancelled_match_rejects_results(db, world):
    world.match.status = "cancelled"
    db.commit()

    out = submit(db, world, world.team_a, 3, 1, three_one(world))
    assert out.error.kind == match_results.MATCH_CANCELLED


def test_draw_updates_both_teams_without_rating_change(db, world):
    lines = [world.line(world.p1, 2), world.line(world.p3, 1), world.line(world.p4, 1)]
    submit(db, world, world.team_a, 2, 2, lines)
    out = submit(db, world, world.team_b, 2, 2, lines)

    assert out.error is None
    assert out.data.verified_result is True
    assert out.data.mvp_player_id is None
    for team_id in (world.team_a.id, world.team_b.id):
        t = fresh(db, Team, team_id)
        assert t.draws == 1
        assert t.rating == pytest.approx(5.0)
        assert t.total_mvps == 0
    for p in (world.p1, world.p3, world.p4):
        row = fresh(db, Player, p.id)
        assert row.rating == pytest.approx(5.3)
        assert row.mvps == 0
    assert fresh(db, Player, world.p1.id).goals == 2


def test_goalless_draw(db, world):
    submit(db, world, world.team_a, 0, 0, [])
    out = submit(db, world, world.team_b, 0, 0, [])

    assert out.error is None
    assert out.data.status == "completed"
    assert fresh(db, Team, world.team_a.id).draws == 1
    assert fresh(db, Team, world.team_b.id).draws == 1


def test_manual_mvp_from_first_report_is_kept(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world), mvp=world.p2)
    out = submit(db, world, world.team_b, 3, 1, three_one(world))

    assert out.data.mvp_player_id == world.p2.id
    assert fresh(db, Player, world.p2.id).rating == pytest.approx(5.8)
    assert fresh(db, Player, world.p2.id).mvps == 1
    assert fresh(db, Player, world.p1.id).rating == pytest.approx(5.3)
    assert fresh(db, Player, world.p1.id).mvps == 0


def test_non_scoring_mvp_from_roster(db, world):
    submit(db, world, world.team_a, 3, 1, three_one(world), mvp=world.p2)
    out = submit(db, world, world.team_b, 3, 1, three_one(world), mvp=world.p4)

    assert out.data.mvp_player_id == world.p4.id
    p4 = fresh(db, Player, world.p4.id)
    assert p4.rating == pytest.approx(5.5)
    assert (p4.mvps, p4.goals) == (1, 0)
    assert fresh(db, Team, world.team_b.id).total_mvps == 1
    assert fresh(db, Team, world.team_a.id).total_mvps == 0


def test_ratings_stay_within_bounds(db):
    w = seed_world(db, team_rating=9.8, player_rating=9.8)
    for i in range(4):
        m = w.match if i == 0 else new_match(db, w)
        lines = [w.line(w.p1, 1)]
        assert submit(db, w, w.team_a, 1, 0, lines, match=m).error is None
        assert submit(db, w, w.team_b, 1, 0, lines, match=m).error is None

    assert fresh(db, Team, w.team_a.id).rating == pytest.approx(10.0)
    assert fresh(db, Player, w.p1.id).rating == pytest.approx(10.0)
    assert fresh(db, Team, w.team_a.id).wins == 4


def test_ratings_never_drop_below_floor(db):
    w = seed_world(db, team_rating=1.5)
    for i in range(3):
        m = w.match if i == 0 else new_match(db, w)
        lines = [w.line(w.p3, 1)]
        submit(db, w, w.team_a, 0, 1, lines, match=m)
        submit(db, w, w.team_b, 0, 1, lines, match=m)

    team_a = fresh(db, Team, w.team_a.id)
    assert team_a.losses == 3
    assert team_a.rating == pytest.approx(1.0)


def _snapshot(m: Match, **overrides) -> Match:
    values = {c.key: getattr(m, c.key) for c in Match.__table__.columns}
    values.update(overrides)
    return Match(**values)


def test_simultaneous_reports_verify_once(db, world, monkeypatch):
    lines = [world.line(world.p1, 3), world.line(world.p2, 1), world.line(world.p3, 2)]
    assert submit(db, world, world.team_a, 4, 2, lines).error is None

    real_load = match_results._load_match
    real_finalize = match_results.finalize_match
    loads = []
    finalized = []

    def load_stale_first(session, match_id):
        m = real_load(session, match_id)
        loads.append(match_id)
        if len(loads) == 1:
            # what team B read before team A's write landed
            return _snapshot(
                m, status="pending", team_a_submitted=False, team_a_submitted_at=None,
                team_a_score=None, team_b_score=None,
            )
        return m

    def counting_finalize(session, m, rows):
        finalized.append(m.id)
        real_finalize(session, m, rows)

    monkeypatch.setattr(match_results, "_load_match", load_stale_first)
    monkeypatch.setattr(match_results, "finalize_match", counting_finalize)

    out = submit(db, world, world.team_b, 4, 2, lines)

    assert out.error is None
    assert out.data.verified_result is True
    assert out.data.status == "completed"
    assert finalized == [world.match.id]
    assert fresh(db, Team, world.team_a.id).wins == 1


def test_late_confirmation_after_verification_applies_nothing(db, world, monkeypatch):
    submit(db, world, world.team_a, 3, 1, three_one(world))
    submit(db, world, world.team_b, 3, 1, three_one(world))

    real_load = match_results._load_match
    loads = []
    finalized = []

    def load_stale_first(session, match_id):
        m = real_load(session, match_id)
        loads.append(match_id)
        if len(loads) == 1:
            # team A believes it is the confirming side
            return _snapshot(m, status="confirmed", verified_result=False, team_a_submitted=False)
        return m

    monkeypatch.setattr(match_results, "_load_match", load_stale_first)
    monkeypatch.setattr(match_results, "finalize_match", lambda session, m, rows: finalized.append(m.id))

    out = submit(db, world, world.team_a, 3, 1, three_one(world))

    assert out.error.kind == match_results.ALREADY_VERIFIED
    assert finalized == []
    assert fresh(db, Team, world.team_a.id).wins == 1


def test_store_failure_rolls_back_submission(db, world, monkeypatch):
    def broken_replace(*args, **kwargs):
        raise OperationalError("INSERT INTO goal_scorers", {}, Exception("connection lost"))

    monkeypatch.setattr(match_results, "_replace_goal_lines", broken_replace)

    out = submit(db, world, world.team_a, 3, 1, three_one(world))

    assert out.data is None
    assert out.error.kind == match_results.STORE_FAILURE
    assert "connection lost" in out.error.message
    m = fresh(db, Match, world.match.id)
    assert m.team_a_submitted is False
    assert m.team_a_score is None
    assert m.status == "pending"


def test_rival_rows_changed_before_claim_block_verification(db, world, monkeypatch):
    assert submit(db, world, world.team_a, 3, 1, [world.line(world.p1, 3), world.line(world.p3, 1)]).error is None

    real_claim = match_results._claim

    def claim_after_rival_rewrite(session, m, own, other, a, b, mvp):
        # team A re-reports the same score with fewer goals of its own in between
        session.execute(
            sa.update(GoalScorer)
            .where(GoalScorer.match_id == m.id, GoalScorer.player_id == world.p1.id)
            .values(goals=2)
        )
        return real_claim(session, m, own, other, a, b, mvp)

    monkeypatch.setattr(match_results, "_claim", claim_after_rival_rewrite)

    out = submit(db, world, world.team_b, 3, 1, [world.line(world.p1, 3), world.line(world.p3, 1)])

    assert out.error.kind == match_results.SCORE_MISMATCH
    assert out.data is None
    m = fresh(db, Match, world.match.id)
    assert m.verified_result is False
    assert m.team_b_submitted is False
    assert m.stats_applied_at is None
    assert goal_rows(db, m.id, world.team_b.id) == {}
    assert fresh(db, Team, world.team_a.id).wins == 0


def test_scorer_must_be_on_roster(db, world):
    outsider = Player(profile_id=world.captain_b.id)
    db.add(outsider)
    db.commit()

    lines = [GoalLine(player_id=outsider.id, team_id=world.team_a.id, goals=1)]
    out = submit(db, world, world.team_a, 1, 0, lines)

    assert out.error.kind == match_results.INVALID_SUBMISSION
    assert str(outsider.id) in out.error.message
    assert fresh(db, Match, world.match.id).team_a_submitted is False


def test_scorer_credited_to_the_wrong_side_rejected(db, world):
    # P3 plays for team B
    lines = [GoalLine(player_id=world.p3.id, team_id=world.team_a.id, goals=1)]
    out = submit(db, world, world.team_a, 1, 0, lines)

    assert out.error.kind == match_results.INVALID_SUBMISSION
    assert goal_rows(db, world.match.id, world.team_a.id) == {}
