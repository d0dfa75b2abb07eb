import logging
from dbs.ui.main_window import DebounceLab
from dbs.data.simulator import SimulatedBursts
from dbs.utils.logs import setup_logging

logger = logging.getLogger("DebounceScheduler")

def run():
    setup_logging()
    app = DebounceLab(source=SimulatedBursts(n_bursts=6, per_burst=10, jitter_ms=10, seed=7))
    logger.info("Debounce Lab started")
    app.mainloop()


if __name__ == "__main__":
    run()
