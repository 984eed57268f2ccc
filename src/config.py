"""Engine configuration and CLI loader."""

from constants import DEBOUNCE_MS, REDIRECT_TARGET, SNOOZE_BUFFER_MS, SNOOZE_DEBOUNCE_MS, TICK_SECONDS


class EngineConfig:
    def __init__(self):
        self.state_file = "focusgate-state.json"
        self.directives_file = None
        self.redirect_target = REDIRECT_TARGET
        self.log_access_file = None
        self.log_error_file = None
        self.quiet = False
        self.debounce_ms = DEBOUNCE_MS
        self.snooze_debounce_ms = SNOOZE_DEBOUNCE_MS
        self.snooze_buffer_ms = SNOOZE_BUFFER_MS
        self.tick_seconds = TICK_SECONDS


class ConfigLoader:
    @staticmethod
    def load_from_args(args) -> EngineConfig:
        config = EngineConfig()
        config.state_file = args.state
        config.directives_file = args.directives_file
        config.log_access_file = args.log_access
        config.log_error_file = args.log_error
        config.quiet = args.quiet
        if args.redirect:
            config.redirect_target = args.redirect
        if args.debounce_ms is not None:
            config.debounce_ms = args.debounce_ms
        if args.tick is not None:
            config.tick_seconds = args.tick
        return config
