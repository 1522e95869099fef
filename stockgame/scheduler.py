"""Single-threaded game loop.

One asyncio event loop, running in a daemon thread, owns the session.
The price tick and the snapshot save are self re-arming timers on that
loop, and every user operation is dispatched onto it, so a trade and a
tick never interleave.
"""

import asyncio
import logging
import threading

from . import config

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Callback re-armed after every run with the current period (ms).

    Must only be driven from the loop's own thread.
    """

    def __init__(self, loop, period, callback, name='task'):
        self.loop = loop
        self.period = period
        self.callback = callback
        self.name = name
        self._handle = None
        self._active = False

    @property
    def active(self):
        return self._active

    def _arm(self):
        self._handle = self.loop.call_later(self.period / 1000, self._fire)

    def _fire(self):
        self._handle = None
        try:
            self.callback()
        except Exception:
            logger.exception("Periodic task %s failed", self.name)
        # The callback may have cancelled or re-armed us
        if self._active and self._handle is None:
            self._arm()

    def start(self, fire_now=False):
        self.cancel()
        self._active = True
        if fire_now:
            self._fire()
        else:
            self._arm()

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._active = False

    def restart(self, period=None, fire_now=True):
        """Cancel the pending run, then arm again with the new period."""
        if period is not None:
            self.period = period
        self.start(fire_now=fire_now)


class Scheduler:

    def __init__(self, session, save_period=config.SAVE_PERIOD):
        self.session = session
        self.loop = asyncio.new_event_loop()
        self.tick_task = PeriodicTask(self.loop, session.tick_period, session.tick, 'tick')
        self.save_task = PeriodicTask(self.loop, save_period, session.save, 'save')
        self.thread = None
        self._ready = threading.Event()

    @property
    def running(self):
        return self._ready.is_set()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._ready.set)
        self.loop.run_forever()

    def start(self):
        if self.running:
            return
        if self.loop.is_closed():
            # stop() closes the loop; timers move to a fresh one
            self.loop = asyncio.new_event_loop()
            self.tick_task.loop = self.loop
            self.save_task.loop = self.loop
        self.thread = threading.Thread(target=self._run, name='stockgame-loop', daemon=True)
        self.thread.start()
        self._ready.wait()
        self.call(self._arm)
        logger.info("Game loop started, tick every %d ms", self.tick_task.period)

    def stop(self, timeout=5):
        if not self.running:
            return
        self.call(self._disarm)
        self._ready.clear()
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout)
        self.loop.close()
        logger.info("Game loop stopped")

    def _arm(self):
        # First tick runs immediately so the chart moves at once
        self.tick_task.start(fire_now=True)
        self.save_task.start()

    def _disarm(self):
        self.tick_task.cancel()
        self.save_task.cancel()
        self.session.save()

    def call(self, fn, *args, **kwargs):
        """Run fn on the game loop and return its result or raise its error."""
        if not self.running or threading.current_thread() is self.thread:
            return fn(*args, **kwargs)

        async def run():
            return fn(*args, **kwargs)

        return asyncio.run_coroutine_threadsafe(run(), self.loop).result()

    # ── Timer reconfiguration ──

    def set_tick_period(self, period):
        return self.call(self._set_tick_period, period)

    def _set_tick_period(self, period):
        period = self.session.set_tick_period(period)
        self.tick_task.period = period
        if self.tick_task.active:
            self.tick_task.restart(period)
        return period

    def slow_time(self):
        return self.set_tick_period(config.SLOW_TICK_PERIOD)

    def reset(self):
        return self.call(self._reset)

    def _reset(self):
        was_active = self.tick_task.active
        self.tick_task.cancel()
        self.session.reset()
        self.tick_task.period = self.session.tick_period
        if was_active:
            self.tick_task.start(fire_now=True)
