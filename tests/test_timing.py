from unittest import TestCase

from voice_policy.backend.policy.timing import TimingController


class _FakeClock:
	def __init__(self, now: float = 0.0):
		self.now = now

	def __call__(self) -> float:
		return self.now


class TimingControllerTests(TestCase):
	def test_report_is_none_before_utterance_end(self) -> None:
		timing = TimingController(_FakeClock())
		timing.mark_checkpoint_a()
		self.assertIsNone(timing.report())

	def test_checkpoints_measured_from_utterance_end(self) -> None:
		clock = _FakeClock(1000.0)
		timing = TimingController(clock)
		timing.mark_utterance_end()
		clock.now = 1200.0
		timing.mark_checkpoint_a()
		clock.now = 1900.0
		timing.mark_checkpoint_b()

		report = timing.report()
		a = report.checkpoint("A")
		b = report.checkpoint("B")
		c = report.checkpoint("C")
		self.assertEqual((a.elapsed_ms, a.target_ms, a.met), (200.0, 300, True))
		self.assertEqual((b.elapsed_ms, b.target_ms, b.met), (900.0, 700, False))
		self.assertIsNone(c.elapsed_ms)
		self.assertFalse(c.met)
		self.assertEqual(c.target_ms, 1200)

	def test_first_mark_wins(self) -> None:
		clock = _FakeClock(0.0)
		timing = TimingController(clock)
		timing.mark_utterance_end()
		clock.now = 500.0
		timing.mark_checkpoint_b()
		clock.now = 800.0
		timing.mark_checkpoint_b()
		self.assertEqual(timing.report().checkpoint("B").elapsed_ms, 500.0)

	def test_new_utterance_resets_marks(self) -> None:
		clock = _FakeClock(0.0)
		timing = TimingController(clock)
		timing.mark_utterance_end()
		clock.now = 100.0
		timing.mark_checkpoint_a()
		clock.now = 5000.0
		timing.mark_utterance_end()
		self.assertIsNone(timing.report().checkpoint("A").elapsed_ms)

	def test_flat_record_and_summary(self) -> None:
		clock = _FakeClock(0.0)
		timing = TimingController(clock)
		timing.mark_utterance_end()
		clock.now = 250.0
		timing.mark_checkpoint_a()
		clock.now = 650.0
		timing.mark_checkpoint_b()
		clock.now = 1300.0
		timing.mark_checkpoint_c()
		payload = timing.report().as_dict()
		self.assertEqual(payload["checkpoint_a_ms"], 250.0)
		self.assertTrue(payload["checkpoint_b_met"])
		self.assertFalse(payload["checkpoint_c_met"])
		self.assertEqual(payload["checkpoint_c_target_ms"], 1200)
		self.assertEqual(payload["summary"], "A:250ms/met B:650ms/met C:1300ms/missed")

	def test_default_clock_produces_non_negative_timings(self) -> None:
		timing = TimingController()
		timing.mark_utterance_end()
		timing.mark_checkpoint_a()
		self.assertGreaterEqual(timing.report().checkpoint("A").elapsed_ms, 0.0)
