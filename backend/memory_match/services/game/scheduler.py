import threading

from memory_match import socketio


_loop_started = threading.Event()


def start_timer_loop(app, lifecycle) -> bool:
    """Start the once-per-process background task driving ``lifecycle.tick``.

    - Ticks every TIMER_TICK_SEC seconds
    - A failing tick is logged and the loop keeps running
    - Returns False when a loop is already running
    """
    if _loop_started.is_set():
        app.logger.info("[timer-skip] loop already running")
        return False
    _loop_started.set()

    period = float(app.config.get('TIMER_TICK_SEC', 1))

    def _worker():
        app.logger.info(f"[timer-loop] started period={period}s")
        while True:
            socketio.sleep(period)
            with app.app_context():
                try:
                    lifecycle.tick()
                except Exception:
                    app.logger.exception("[timer-loop] tick failed")

    socketio.start_background_task(_worker)
    return True
