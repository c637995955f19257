import io

from cachesim.core.config import CacheConfig
from cachesim.core.simulator import CacheSimulator
from cachesim.simulation.interactive import InteractiveSession


def _session(**kw):
    sim = CacheSimulator()
    sim.configure(CacheConfig(write_policy='WRITE_BACK'))
    return InteractiveSession(sim, **kw)


def test_access_and_stats_commands():
    s = _session()
    assert s.execute("access 0x1000 READ") == "Access 0x1000 (READ) -> MISS"
    assert s.execute("access 0x1000 read") == "Access 0x1000 (READ) -> HIT"
    assert s.execute("ACCESS 0x2000 write") == "Access 0x2000 (WRITE) -> WRITE MISS"
    stats = s.execute("stats")
    assert "Total Accesses: 3" in stats
    assert "Hits: 1" in stats


def test_batch_command():
    s = _session()
    out = s.execute("batch 0x0,0x0,0x20 READ,WRITE,read")
    assert out.splitlines() == [
        "Access 0x0 (READ) -> MISS",
        "Access 0x0 (WRITE) -> WRITE HIT",
        "Access 0x20 (READ) -> MISS",
    ]


def test_batch_keeps_going_after_bad_item():
    s = _session()
    out = s.execute("batch 0x0,zz,0x0 R,R,R").splitlines()
    assert out[0].endswith("MISS")
    assert out[1].startswith("Error:")
    assert out[2].endswith("HIT")


def test_contents_config_reset_help():
    s = _session()
    s.execute("access 0x0 WRITE")
    contents = s.execute("contents")
    assert "Set 0: [V:1 D:1 Tag:0x0]" in contents
    assert "4-way" in s.execute("config")
    assert s.execute("reset") == "Cache reset successfully."
    assert "Total Accesses: 0" in s.execute("stats")
    assert "batch" in s.execute("help")


def test_usage_and_errors():
    s = _session()
    assert s.execute("access 0x10").startswith("Usage:")
    assert s.execute("access 0x10 FETCH").startswith("Error:")
    assert s.execute("frobnicate").startswith("Unknown command")
    assert s.execute("   ") == ""


def test_verbose_shows_placement():
    s = _session(verbose=True)
    out = s.execute("access 0x1234 R")
    assert "tag=0x12 set=1 way=0" in out


def test_run_loop_until_quit():
    s = _session()
    stdin = io.StringIO("access 0x0 R\naccess 0x0 R\nquit\naccess 0x0 R\n")
    stdout = io.StringIO()
    s.run(stdin=stdin, stdout=stdout)
    text = stdout.getvalue()
    assert "=== Interactive Mode ===" in text
    assert "-> MISS" in text and "-> HIT" in text
    assert s.simulator.stats.accesses == 2


def test_run_loop_stops_at_eof():
    s = _session()
    s.run(stdin=io.StringIO("access 0x0 R\n"), stdout=io.StringIO())
    assert s.simulator.stats.accesses == 1
