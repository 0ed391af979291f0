"""
Centurion Mode Tests

Tests for:
- Start readiness (tape loaded, audio devices prepared)
- Cue dispatch fan-out and monotonic cue index
- skip() semantics and the horn/song/horn scenario
- Resumable stop/start
- Per-cue error isolation
- Teardown through the ModeManager
"""

from unittest.mock import Mock

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aurora.effects import EffectParams, FixedPosition
from aurora.entities import Audio, DeviceCategory, LightsGroup, LightsMovingHead, Screen
from aurora.errors import InvariantViolation
from aurora.events import BeatEvent, HornEvent, SongData
from aurora.handler_manager import HandlerManager
from aurora.handlers import CenturionScreenHandler, SetEffectsHandler, SimpleAudioHandler
from aurora.modes import CenturionMode, ModeManager, TapeState
from aurora.modes.centurion import BeatCue, EffectCue, HornCue, MixTape, OtherCue, SongCue
from aurora.scheduling import ManualTimer
from aurora.store import InMemoryDeviceStore
from aurora.transport import RecordingTransport


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


SONG = SongData('Artist', 'Title')


def scenario_tape():
    return MixTape(
        name='Scenario',
        song_file='/audio/scenario.mp3',
        feed=[HornCue(0, counter=0), SongCue(5, [SONG]), HornCue(10, counter=1)],
    )


class Rig:
    """A ModeManager plus handlers, devices and a fake clock."""

    def __init__(self, audios=()):
        self.transport = RecordingTransport()
        self.lights_handler = SetEffectsHandler(self.transport)
        self.audio_handler = SimpleAudioHandler(self.transport)
        self.handler_manager = HandlerManager(InMemoryDeviceStore(), self.transport, {
            DeviceCategory.LIGHTS: [self.lights_handler],
            DeviceCategory.SCREEN: [CenturionScreenHandler(self.transport)],
            DeviceCategory.AUDIO: [self.audio_handler],
        })
        self.manager = ModeManager()
        self.clock = FakeClock(1000.0)
        self.timers = []
        self.group = LightsGroup(1, 'stage', moving_heads=[LightsMovingHead('mh1')])
        self.screen = Screen(1, 'tv', socket_id='s1')
        self.audios = list(audios)

        self.horns = []
        self.songs = []
        self.beats = []
        self.others = []
        self.manager.music_emitter.on('horn', self.horns.append)
        self.manager.music_emitter.on('song', self.songs.append)
        self.manager.music_emitter.on('beat', self.beats.append)
        self.manager.music_emitter.on('other', self.others.append)

    def timer_factory(self, interval, callback, name=None):
        self.timers.append(ManualTimer(interval, callback, name))
        return self.timers[-1]

    def mode(self, tape=None, enable=True):
        mode = CenturionMode(
            self.handler_manager, [self.group], [self.screen], self.audios,
            tick_interval=0.05, timer_factory=self.timer_factory,
            clock=self.clock, wall_clock=lambda: 1700000000.0,
        )
        if tape is not None:
            mode.load_tape(tape)
        if enable:
            self.manager.enable_mode(CenturionMode, mode, 'centurion')
        return mode

    def advance(self, seconds):
        self.clock.now += seconds


@pytest.fixture
def rig():
    return Rig()


class TestStart:
    """Tests for start() readiness and state transitions."""

    def test_state_machine(self, rig):
        mode = rig.mode()
        assert mode.state == TapeState.UNLOADED
        mode.load_tape(scenario_tape())
        assert mode.state == TapeState.LOADED
        assert mode.start()
        assert mode.state == TapeState.PLAYING
        mode.stop()
        assert mode.state == TapeState.STOPPED

    def test_start_without_tape_not_ready(self, rig):
        assert rig.mode().start() is False

    def test_start_waits_for_audio_devices(self):
        """Test start() returns False until every audio device loaded the song."""
        rig = Rig(audios=[Audio(1, 'stage', socket_id='a1')])
        mode = rig.mode(scenario_tape())
        assert rig.transport.events_for('a1')[-1] == ('load', {'url': '/audio/scenario.mp3'})

        assert mode.start() is False
        assert mode.state == TapeState.LOADED
        assert rig.horns == []

        rig.audio_handler.mark_loaded('stage', '/audio/scenario.mp3')
        assert mode.start() is True
        assert rig.transport.events_for('a1')[-1] == ('play', {'url': '/audio/scenario.mp3', 'seconds': 0.0})

    def test_start_dispatches_due_cues_and_starts_timer(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        assert rig.horns == [HornEvent(counter=0)]
        assert mode.next_cue_index == 1
        assert rig.timers[0].running
        assert rig.timers[0].interval == 0.05

    def test_start_before_enable_rejected(self, rig):
        mode = rig.mode(scenario_tape(), enable=False)
        with pytest.raises(InvariantViolation):
            mode.start()

    def test_load_after_start_rejected(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        mode.stop()
        with pytest.raises(InvariantViolation):
            mode.load_tape(scenario_tape())

    def test_start_while_playing_is_noop(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        assert mode.start()
        assert len(rig.timers) == 1
        assert rig.horns == [HornEvent(counter=0)]


class TestTick:
    """Tests for tick() dispatch."""

    def test_dispatches_in_order_once(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(5)
        assert [c.timestamp for c in mode.tick()] == [5]
        assert rig.songs == [[SONG]]
        assert mode.current_song == [SONG]
        rig.advance(5)
        rig.timers[0].fire()
        assert rig.horns == [HornEvent(counter=0), HornEvent(counter=1)]

    def test_idempotent_at_fixed_clock(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(7)
        first = mode.tick()
        assert mode.tick() == []
        assert len(first) == 1
        assert mode.next_cue_index == 2

    def test_late_tick_catches_up(self, rig):
        """Test several overdue cues are dispatched in one tick."""
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(30)
        assert [c.timestamp for c in mode.tick()] == [5, 10]

    def test_tick_when_stopped_dispatches_nothing(self, rig):
        mode = rig.mode(scenario_tape())
        assert mode.tick() == []

    def test_beat_and_other_cues(self, rig):
        tape = MixTape('t', '/a.mp3', [BeatCue(0), OtherCue(0, {'lights': 'off'})])
        mode = rig.mode(tape)
        mode.start()
        assert rig.beats == [BeatEvent(start=0, duration=0.0)]
        assert rig.others == [{'lights': 'off'}]

    def test_effect_cue_sets_lights(self, rig):
        tape = MixTape('t', '/a.mp3', [EffectCue(0, EffectParams('FixedPosition', {'pan': 5, 'tilt': 6}))])
        mode = rig.mode(tape)
        mode.start()
        effect = rig.lights_handler.effects[rig.group.id]
        assert isinstance(effect, FixedPosition)
        assert effect.props.pan == 5

    def test_failing_cue_does_not_block_feed(self, rig):
        """Test a broken cue is logged and the index still advances."""
        tape = MixTape('t', '/a.mp3', [EffectCue(0, EffectParams('NoSuchEffect')), HornCue(0, counter=4)])
        mode = rig.mode(tape)
        mode.start()
        assert mode.next_cue_index == 2
        assert rig.horns == [HornEvent(counter=4)]

    def test_failing_listener_is_isolated(self, rig):
        rig.manager.music_emitter.on('horn', Mock(side_effect=RuntimeError("boom")))
        mode = rig.mode(scenario_tape())
        mode.start()
        assert rig.horns == [HornEvent(counter=0)]


class TestSkip:
    """Tests for skip()."""

    def test_scenario_skip_past_song(self, rig):
        """Test horn 0, song 5, horn 10: skip(6) suppresses the song, t=10 horn fires once."""
        mode = rig.mode(scenario_tape())
        mode.start()
        assert rig.horns == [HornEvent(counter=0)]

        mode.skip(6)
        assert mode.tick() == []
        assert rig.songs == []

        rig.advance(3.9)
        assert mode.tick() == []
        rig.advance(0.2)
        assert mode.tick() == [HornCue(10, counter=1)]
        rig.advance(5)
        assert mode.tick() == []
        assert rig.horns == [HornEvent(counter=0), HornEvent(counter=1)]

    def test_next_index_is_first_cue_after_target(self, rig):
        mode = rig.mode(scenario_tape())
        mode.skip(5)
        assert mode.next_cue_index == 2
        mode.skip(4.99)
        assert mode.next_cue_index == 1
        mode.skip(0)
        assert mode.next_cue_index == 1
        mode.skip(100)
        assert mode.next_cue_index == 3

    def test_negative_clamped(self, rig):
        mode = rig.mode(scenario_tape())
        mode.skip(-3)
        assert mode.elapsed() == 0.0

    def test_skip_backwards_replays_later_cues(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(11)
        mode.tick()
        mode.skip(4)
        rig.advance(1)
        assert [c.timestamp for c in mode.tick()] == [5]

    def test_skip_while_playing_tells_audio(self):
        rig = Rig(audios=[Audio(1, 'stage', socket_id='a1')])
        mode = rig.mode(scenario_tape())
        rig.audio_handler.mark_loaded('stage', '/audio/scenario.mp3')
        mode.start()
        mode.skip(42)
        assert rig.transport.events_for('a1')[-1] == ('skip', {'seconds': 42.0})

    def test_skip_before_start_sets_start_position(self, rig):
        mode = rig.mode(scenario_tape())
        mode.skip(6)
        mode.start()
        assert rig.horns == []
        assert mode.elapsed() == 6.0


class TestStop:
    """Tests for the resumable stop()."""

    def test_stop_cancels_timer_and_keeps_position(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(7)
        assert mode.stop() is True
        assert rig.timers[0].cancelled
        rig.advance(100)
        assert mode.elapsed() == 7.0
        assert mode.tick() == []

    def test_start_resumes(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(7)
        mode.tick()
        mode.stop()
        rig.advance(100)

        assert mode.start()
        assert len(rig.timers) == 2
        rig.advance(3)
        assert mode.tick() == [HornCue(10, counter=1)]

    def test_stop_when_not_playing(self, rig):
        assert rig.mode(scenario_tape()).stop() is False

    def test_stop_tells_audio(self):
        rig = Rig(audios=[Audio(1, 'stage', socket_id='a1')])
        mode = rig.mode(scenario_tape())
        rig.audio_handler.mark_loaded('stage', '/audio/scenario.mp3')
        mode.start()
        mode.stop()
        assert rig.transport.events_for('a1')[-1] == ('stop', None)

    def test_start_while_stopping_keeps_audio_playing(self):
        """A start() landing while stop() cancels the timer wins: audio is not silenced."""
        rig = Rig(audios=[Audio(1, 'stage', socket_id='a1')])
        holder = {}

        class RestartingTimer(ManualTimer):
            def cancel(self):
                super().cancel()
                if len(rig.timers) == 1:
                    holder['mode'].start()

        def timer_factory(interval, callback, name=None):
            rig.timers.append(RestartingTimer(interval, callback, name))
            return rig.timers[-1]

        rig.timer_factory = timer_factory
        mode = holder['mode'] = rig.mode(scenario_tape())
        rig.audio_handler.mark_loaded('stage', '/audio/scenario.mp3')
        mode.start()

        assert mode.stop() is True

        assert mode.playing
        assert rig.timers[1].running
        commands = [event for event, _ in rig.transport.events_for('a1') if event in ('play', 'stop')]
        assert commands[-1] == 'play'


class TestLifecycle:
    """Tests for binding and teardown."""

    def test_binds_devices_to_centurion_handlers(self):
        audio = Audio(1, 'stage')
        rig = Rig(audios=[audio])
        rig.mode(scenario_tape())
        assert rig.handler_manager.handler_of(rig.group) == 'SetEffectsHandler'
        assert rig.handler_manager.handler_of(rig.screen) == 'CenturionScreenHandler'
        assert rig.handler_manager.handler_of(audio) == 'SimpleAudioHandler'

    def test_disable_stops_playback(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.manager.disable_mode(CenturionMode, 'centurion')
        assert rig.timers[0].cancelled
        assert mode.state == TapeState.STOPPED
        assert rig.handler_manager.handler_of(rig.group) == ''

    def test_replacing_mode_cancels_old_timer(self, rig):
        first = rig.mode(scenario_tape())
        first.start()
        second = rig.mode(scenario_tape())
        assert rig.timers[0].cancelled
        assert rig.manager.get_mode(CenturionMode) is second

    def test_status(self, rig):
        mode = rig.mode(scenario_tape())
        mode.start()
        rig.advance(6)
        mode.tick()
        status = mode.status()
        assert status['name'] == 'Scenario'
        assert status['playing'] is True
        assert status['start_time'] == 1700000000.0
        assert status['elapsed'] == 6.0
        assert status['next_cue_index'] == 2
        assert status['current_song'] == [{'artist': 'Artist', 'title': 'Title'}]
