"""Tests for concurrency rules."""

import unittest

from gostyle_lint.analyzers.go_analyzer import GoAnalyzer
from gostyle_lint.core.config import Config
from gostyle_lint.core.finding import Severity


def _findings(code, rule_id, config=None):
    analyzer = GoAnalyzer(config or Config())
    return [f for f in analyzer.analyze(code, "worker.go") if f.rule_id == rule_id]


class TestGoroutineLifecycle(unittest.TestCase):
    """Test detection of goroutines that cannot be stopped."""

    CODE = """package worker

import (
	"context"
	"external"
)

type Worker struct {
	in chan int
}

func (w *Worker) spin() {
	for {
		work()
	}
}

func (w *Worker) run(ctx context.Context) {
	for {
		select {
		case <-ctx.Done():
			return
		case v := <-w.in:
			use(v)
		}
	}
}

func (w *Worker) Start(ctx context.Context) {
	go w.spin()
	go w.run(ctx)
	go external.Run()
	go external.Serve(ctx)
	go func() {
		<-ctx.Done()
	}()
}
"""

    def test_unstoppable_goroutines(self):
        findings = _findings(self.CODE, "goroutine-lifecycle")

        self.assertEqual([f.line for f in findings], [30, 32])
        self.assertIn("w.spin", findings[0].message)
        self.assertIn("external.Run", findings[1].message)
        self.assertEqual(findings[0].severity, Severity.WARNING)

    def test_literal_without_wait(self):
        code = """package worker

func start(jobs chan int) {
	go func() {
		for job := range jobs {
			process(job)
		}
	}()
}
"""
        findings = _findings(code, "goroutine-lifecycle")
        self.assertEqual(len(findings), 1)
        self.assertEqual(findings[0].line, 4)

    def test_literal_waiting_on_done_channel(self):
        code = """package worker

func start(done chan struct{}, jobs chan int) {
	go func() {
		for {
			select {
			case <-done:
				return
			case job := <-jobs:
				process(job)
			}
		}
	}()
}
"""
        self.assertEqual(_findings(code, "goroutine-lifecycle"), [])


def test_mutex_copy():
    """Test detection of mutexes copied by value."""
    code = """package cache

import "sync"

type Cache struct {
	mu   sync.Mutex
	data map[string]string
}

func (c Cache) Len() int {
	return len(c.data)
}

func (c *Cache) Size() int {
	return len(c.data)
}

func copyLock(m sync.Mutex) {}

func snapshot(c Cache) {}
"""

    findings = _findings(code, "mutex-copy")

    assert [f.line for f in findings] == [10, 18, 20]
    assert all(f.severity == Severity.ERROR for f in findings)


def test_mutex_copy_reports_receiver_and_parameter():
    code = """package cache

import "sync"

type Store struct {
	mu sync.Mutex
}

func (s Store) Merge(other Store) {}
"""

    findings = _findings(code, "mutex-copy")

    assert [(f.line, f.col, f.message) for f in findings] == [
        (9, 7, "value receiver of Store.Merge copies a mutex"),
        (9, 22, "parameter 'other' of Merge copies a mutex (Store)"),
    ]


def test_waitgroup_by_value():
    code = """package worker

import "sync"

func worker(wg sync.WaitGroup) {}

func ok(wg *sync.WaitGroup) {}

func start(wg sync.WaitGroup) {
	go func(wg sync.WaitGroup) {
	}(wg)
}
"""

    findings = _findings(code, "waitgroup-by-value")

    assert [f.line for f in findings] == [5, 9, 10]
    assert "goroutine literal" in findings[2].message


def test_defer_in_loop():
    code = """package worker

func closeAll(paths []string) {
	for _, p := range paths {
		f := open(p)
		defer f.Close()
		func() {
			defer release(p)
		}()
	}
	defer cleanup()
}
"""

    findings = _findings(code, "defer-in-loop")

    assert len(findings) == 1
    assert findings[0].line == 6
    assert "defer f.Close inside a loop" in findings[0].message


def test_goroutine_loop_capture():
    code = """package worker

func fanout(items []string) {
	for _, item := range items {
		go func() {
			handle(item)
		}()
		go func(item string) {
			handle(item)
		}(item)
	}
	for i := 0; i < 3; i++ {
		go func() {
			use(i)
		}()
	}
}
"""

    findings = _findings(code, "goroutine-loop-capture")

    assert [f.line for f in findings] == [5, 13]
    assert findings[0].message == "goroutine captures loop variable item"


def test_channel_buffer_size():
    code = """package worker

func channels(n int) {
	a := make(chan int, 100)
	b := make(chan int, 1)
	c := make(chan int)
	d := make(chan struct{}, n)
	use(a, b, c, d)
}
"""

    findings = _findings(code, "channel-buffer-size")

    assert len(findings) == 1
    assert findings[0].line == 4
    assert "buffer of 100" in findings[0].message


class TestSelect(unittest.TestCase):
    """Test select statement rules."""

    CODE = """package worker

func wait(ch chan int) {
	select {
	case <-ch:
	}
	select {}
	select {
	case v := <-ch:
		use(v)
	default:
	}
}
"""

    def test_single_case(self):
        findings = _findings(self.CODE, "select-single-case")
        self.assertEqual([f.line for f in findings], [4])

    def test_empty(self):
        findings = _findings(self.CODE, "select-empty")
        self.assertEqual([f.line for f in findings], [7])


def test_context_rules():
    code = """package worker

import (
	"context"
	"sync"
)

type Job struct {
	sync.Mutex
	ctx  context.Context
	name string
}

func Fetch(url string, ctx context.Context) error {
	return nil
}

func Load(ctx context.Context, url string) error {
	return nil
}
"""

    not_first = _findings(code, "context-not-first")
    in_struct = _findings(code, "context-in-struct")
    embedded = _findings(code, "mutex-embedded")

    assert len(not_first) == 1
    assert "parameter 2 of Fetch" in not_first[0].message
    assert [(f.line, f.col) for f in in_struct] == [(10, 2)]
    assert [(f.line, f.col) for f in embedded] == [(9, 2)]


if __name__ == "__main__":
    unittest.main()
