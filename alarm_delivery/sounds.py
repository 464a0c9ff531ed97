from __future__ import annotations

import logging
from pathlib import Path
from threading import Event, Thread, current_thread
from typing import Callable, Optional

from audio_io import AudioPlayer, create_pyaudio

from .ports import SoundLoop
from .tones import chunk_pcm, ensure_alarm_sound, read_wav

try:
    import winsound
except ImportError:  # pragma: no cover - non-Windows fallback
    winsound = None  # type: ignore

logger = logging.getLogger(__name__)


class AlarmSoundPlayer(SoundLoop):
    def __init__(self, sound_path: Path, sample_rate: int = 24000, pa_factory: Callable = create_pyaudio):
        self.sound_path = Path(sound_path)
        self.sample_rate = sample_rate
        self.pa_factory = pa_factory
        self._stop_event = Event()
        self._loop_thread: Optional[Thread] = None

    @property
    def playing(self) -> bool:
        return bool(self._loop_thread and self._loop_thread.is_alive())

    def start_loop(self) -> None:
        ready = self._prepare_sound()
        if winsound and ready:
            try:
                winsound.PlaySound(
                    str(self.sound_path),
                    winsound.SND_FILENAME | winsound.SND_LOOP | winsound.SND_ASYNC,
                )
                return
            except RuntimeError:
                logger.warning("winsound.PlaySound failed, falling back to PyAudio loop")

        if self.playing:
            return
        self._stop_event = Event()
        self._loop_thread = Thread(
            target=self._play_loop,
            args=(self._stop_event,),
            name="alarm-sound",
            daemon=True,
        )
        self._loop_thread.start()
        logger.info("Alarm sound loop started")

    def _prepare_sound(self) -> bool:
        try:
            ensure_alarm_sound(self.sound_path, sample_rate=self.sample_rate)
        except Exception:
            # The loop thread still runs and falls back to logging.
            logger.error("Cannot prepare alarm sound %s", self.sound_path, exc_info=True)
            return False
        return True

    def stop_loop(self) -> None:
        self._stop_event.set()
        if winsound:
            try:
                winsound.PlaySound(None, winsound.SND_PURGE)
            except RuntimeError:
                logger.debug("winsound.PlaySound purge failed")
        thread, self._loop_thread = self._loop_thread, None
        if thread and thread is not current_thread():
            thread.join(timeout=1.0)

    def _play_loop(self, stop_event: Event) -> None:  # pragma: no cover - audio device loop
        try:
            pcm, rate = read_wav(self.sound_path)
            pa = self.pa_factory()
        except Exception:
            logger.error("Cannot open alarm sound %s", self.sound_path, exc_info=True)
            self._log_loop(stop_event)
            return

        player = None
        try:
            player = AudioPlayer(pa, rate)
            while not stop_event.is_set():
                for chunk in chunk_pcm(pcm, rate):
                    if stop_event.is_set():
                        break
                    player.play_bytes(chunk)
        except Exception:
            logger.error("Alarm sound playback failed", exc_info=True)
            self._log_loop(stop_event)
        finally:
            if player:
                player.close()
            pa.terminate()

    @staticmethod
    def _log_loop(stop_event: Event) -> None:  # pragma: no cover - timing loop
        while not stop_event.is_set():
            logger.info("Alarm ringing...")
            stop_event.wait(0.75)
