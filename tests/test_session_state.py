import threading

from session_state import SessionState


def test_starts_with_no_active_game(state):
    assert state.active() is None
    assert not state.is_active("g1")


def test_claim_and_release(state):
    assert state.claim("g1")
    assert state.active() == "g1"
    assert state.is_active("g1")
    assert state.release("g1")
    assert state.active() is None


def test_second_claim_is_refused(state):
    assert state.claim("g1")
    assert not state.claim("g2")
    assert not state.claim("g1")
    assert state.active() == "g1"


def test_release_checks_the_game_id(state):
    state.claim("g1")
    assert not state.release("g2")
    assert state.active() == "g1"
    assert state.release("g1")
    assert not state.release("g1")


def test_empty_id_never_claimed(state):
    assert not state.claim("")
    assert state.active() is None


def test_idle_for_tracks_last_game(state, clock):
    clock.advance(100)
    assert state.idle_for() == 100

    state.claim("g1")
    clock.advance(500)
    assert state.idle_for() == 0

    state.release("g1")
    clock.advance(30)
    assert state.idle_for() == 30
    assert state.idle_for(now=clock.now + 10) == 40


def test_concurrent_claims_leave_one_winner():
    state = SessionState()
    wins = []
    barrier = threading.Barrier(16)

    def worker(i):
        barrier.wait()
        if state.claim(f"g{i}"):
            wins.append(i)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(wins) == 1
    assert state.active() == f"g{wins[0]}"
