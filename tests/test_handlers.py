"""
Device Handler Tests

Tests for:
- Membership by entity id
- Lights handlers ticking effects and pushing lights_state
- Random/develop effect selection
- Audio readiness tracking and playback commands
- Screen handlers
"""

import random
import threading

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aurora.effects import ClassicRotate, FixedPosition
from aurora.entities import Audio, LightsGroup, LightsMovingHead, Screen
from aurora.events import BeatEvent, HornEvent, SongData
from aurora.handlers import (
    CenturionScreenHandler,
    DevelopEffectsHandler,
    RandomEffectsHandler,
    SetEffectsHandler,
    SimpleAudioHandler,
    TimeTrailRaceScreenHandler,
)
from aurora.scheduling import ManualTimer
from aurora.transport import RecordingTransport


@pytest.fixture
def transport():
    return RecordingTransport()


def make_group(id=1, socket_id='sock-lights'):
    return LightsGroup(id, f'group{id}', socket_id=socket_id,
                       moving_heads=[LightsMovingHead('mh1'), LightsMovingHead('mh2')])


class TestMembership:
    """Tests for BaseHandler entity membership."""

    def test_reloaded_copy_replaces_stale_reference(self, transport):
        """Test membership is keyed by entity id."""
        handler = SimpleAudioHandler(transport)
        stale = Audio(1, 'stage')
        fresh = Audio(1, 'stage', socket_id='s1')
        handler.register_entity(stale)
        handler.register_entity(fresh)
        assert handler.entities == [fresh]
        assert handler.has_entity(stale)

    def test_wrong_category_rejected(self, transport):
        with pytest.raises(ValueError):
            SimpleAudioHandler(transport).register_entity(Screen(1, 'tv'))

    def test_remove_reports_membership(self, transport):
        handler = CenturionScreenHandler(transport)
        screen = Screen(1, 'tv')
        assert handler.remove_entity(screen) is False
        handler.register_entity(screen)
        assert handler.remove_entity(screen) is True
        assert handler.entities == []

    def test_push_skips_disconnected(self, transport):
        handler = CenturionScreenHandler(transport)
        handler.register_entity(Screen(1, 'online', socket_id='s1'))
        handler.register_entity(Screen(2, 'offline'))
        assert handler.broadcast('ping') == 1
        assert transport.sent == [('s1', 'ping', None)]


class TestLightsHandlers:
    """Tests for lights handlers."""

    def test_set_effect_requires_registration(self, transport):
        handler = SetEffectsHandler(transport)
        assert handler.set_effect(make_group(), ClassicRotate.build()) is None

    def test_tick_pushes_lights_state(self, transport):
        handler = SetEffectsHandler(transport)
        group = make_group()
        handler.register_entity(group)
        handler.set_effect(group, FixedPosition.build(pan=20, tilt=40))

        ticked = handler.tick()

        assert ticked == [group]
        (socket_id, event, payload), = transport.sent
        assert (socket_id, event) == ('sock-lights', 'lights_state')
        assert payload['moving_heads'][0]['pan'] == 20
        assert payload['moving_heads'][1]['tilt'] == 40

    def test_groups_without_effect_are_not_ticked(self, transport):
        handler = SetEffectsHandler(transport)
        handler.register_entity(make_group())
        assert handler.tick() == []
        assert transport.sent == []

    def test_remove_clears_effect(self, transport):
        handler = SetEffectsHandler(transport)
        group = make_group()
        handler.register_entity(group)
        handler.set_effect(group, ClassicRotate.build())
        handler.remove_entity(group)
        assert handler.effects == {}

    def test_timer_lifecycle(self, transport):
        """Test start() ticks through the timer and stop() cancels it."""
        timers = []

        def factory(interval, callback, name=None):
            timers.append(ManualTimer(interval, callback, name))
            return timers[-1]

        handler = SetEffectsHandler(transport, tick_interval=0.1, timer_factory=factory)
        group = make_group()
        handler.register_entity(group)
        handler.set_effect(group, FixedPosition.build())

        handler.start()
        handler.start()
        assert len(timers) == 1
        assert timers[0].interval == 0.1
        timers[0].fire(2)
        assert len(transport.sent) == 2

        handler.stop()
        assert timers[0].cancelled
        assert handler.timer is None

    def test_random_handler_picks_on_register(self, transport):
        handler = RandomEffectsHandler(transport, rng=random.Random(1), choices=['FixedPosition'])
        group = make_group()
        handler.register_entity(group)
        assert type(handler.effects[group.id]).__name__ == 'FixedPosition'

    def test_random_handler_repicks_on_beats(self, transport):
        handler = RandomEffectsHandler(transport, beats_per_change=4, rng=random.Random(1))
        group = make_group()
        handler.register_entity(group)
        first = handler.effects[group.id]
        beat = BeatEvent(start=0.0, duration=0.5)
        for _ in range(3):
            handler.beat(beat)
        assert handler.effects[group.id] is first
        handler.beat(beat)
        assert handler.effects[group.id] is not first

    def test_random_handler_counts_beats_from_many_threads(self, transport):
        """Beats arrive from the socket thread and the Centurion timer thread at once."""
        handler = RandomEffectsHandler(transport, beats_per_change=10, rng=random.Random(1))
        handler.register_entity(make_group())
        picks = []
        pick = handler._pick
        handler._pick = lambda group: (picks.append(group.id), pick(group))
        beat = BeatEvent(start=0.0, duration=0.5)

        def send_beats():
            for _ in range(500):
                handler.beat(beat)

        threads = [threading.Thread(target=send_beats) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert handler.beats_seen == 2000
        assert len(picks) == 200

    def test_develop_handler_rotates(self, transport):
        handler = DevelopEffectsHandler(transport)
        group = make_group()
        handler.register_entity(group)
        effect = handler.effects[group.id]
        assert isinstance(effect, ClassicRotate)
        assert effect.props.offset_factor == 0.25


class TestSimpleAudioHandler:
    """Tests for audio readiness and commands."""

    def test_ready_without_devices(self, transport):
        assert SimpleAudioHandler(transport).is_ready('/song.mp3')

    def test_ready_after_all_devices_loaded(self, transport):
        handler = SimpleAudioHandler(transport)
        handler.register_entity(Audio(1, 'stage', socket_id='a1'))
        handler.register_entity(Audio(2, 'bar', socket_id='a2'))

        assert handler.prepare('/song.mp3') == 2
        assert not handler.is_ready('/song.mp3')
        assert handler.mark_loaded('stage', '/song.mp3')
        assert handler.missing('/song.mp3') == ['bar']
        assert handler.mark_loaded('bar', '/song.mp3')
        assert handler.is_ready('/song.mp3')

    def test_loaded_other_url_is_not_ready(self, transport):
        handler = SimpleAudioHandler(transport)
        handler.register_entity(Audio(1, 'stage'))
        handler.mark_loaded('stage', '/old.mp3')
        assert not handler.is_ready('/new.mp3')

    def test_prepare_forgets_other_urls(self, transport):
        handler = SimpleAudioHandler(transport)
        handler.register_entity(Audio(1, 'stage'))
        handler.mark_loaded('stage', '/old.mp3')
        handler.prepare('/new.mp3')
        assert handler.loaded == {}

    def test_unknown_device_not_marked(self, transport):
        assert not SimpleAudioHandler(transport).mark_loaded('ghost', '/song.mp3')

    def test_removal_forgets_loaded(self, transport):
        handler = SimpleAudioHandler(transport)
        audio = Audio(1, 'stage')
        handler.register_entity(audio)
        handler.mark_loaded('stage', '/song.mp3')
        handler.remove_entity(audio)
        assert handler.loaded == {}

    def test_commands(self, transport):
        handler = SimpleAudioHandler(transport)
        handler.register_entity(Audio(1, 'stage', socket_id='a1'))
        handler.play('/song.mp3', 12.5)
        handler.skip(30)
        handler.pause()
        handler.horn(HornEvent(counter=3))
        assert transport.events_for('a1') == [
            ('play', {'url': '/song.mp3', 'seconds': 12.5}),
            ('skip', {'seconds': 30}),
            ('stop', None),
            ('horn', {'counter': 3, 'strobe_time': 1500}),
        ]


class TestScreenHandlers:
    """Tests for screen handlers."""

    def test_centurion_screen_forwards_music(self, transport):
        handler = CenturionScreenHandler(transport)
        handler.register_entity(Screen(1, 'tv', socket_id='s1'))
        handler.horn(HornEvent(counter=1, strobe_time=500))
        handler.song([SongData('Artist', 'Title')])
        assert transport.events_for('s1') == [
            ('horn', {'counter': 1, 'strobe_time': 500}),
            ('song', [{'artist': 'Artist', 'title': 'Title'}]),
        ]

    def test_race_screen_catches_up_on_register(self, transport):
        """Test a screen bound mid-race receives the last state."""
        handler = TimeTrailRaceScreenHandler(transport)
        handler.send_state({'state': 'STARTED'})
        handler.register_entity(Screen(1, 'tv', socket_id='s1'))
        assert transport.events_for('s1') == [('race_update', {'state': 'STARTED'})]
