# gitsage

Support code for a tool that writes Conventional Commits messages. The
package parses, formats and validates commit messages, keeps a layered
YAML configuration and a JSON history of generated messages, caches
responses in memory, and wraps unreliable calls in retries and a circuit
breaker, with one error type that maps to process exit codes.

Requires Python 3.10 or later and PyYAML.

## Modules

| Module | What it does |
| --- | --- |
| `gitsage.message` | `CommitMessage` parses, formats and validates Conventional Commits messages. |
| `gitsage.config` | `ConfigManager` resolves settings from overrides, `GITSAGE_*` environment variables, a YAML file and defaults. |
| `gitsage.history` | `HistoryManager` keeps `HistoryEntry` records in a JSON file, dropping the oldest past a limit. |
| `gitsage.cache` | `LRUCache` with a time-to-live per entry, and `generate_cache_key`. |
| `gitsage.apperrors` | `AppError` and `ErrorCode`, exit codes, ready-made errors, and error formatting that masks API keys. |
| `gitsage.retry` | `retry` with exponential backoff, optional jitter and retry-after hints. |
| `gitsage.circuit_breaker` | `CircuitBreaker` that rejects calls for a while after repeated failures. |
| `gitsage.logger` | A levelled logger with a verbose mode for API calls, retries and breaker state. |

## Commit messages

```python
from gitsage.message import CommitMessage, CommitValidationError

msg = CommitMessage.parse(
    "feat(api): add endpoint\n\nAdded new REST endpoint.\n\nCloses: #123"
)
msg.type         # "feat"
msg.scope        # "api"
msg.subject      # "add endpoint"
msg.body         # "Added new REST endpoint."
msg.footer       # "Closes: #123"
msg.format()     # the full message again

try:
    CommitMessage.parse("just a subject").validate()
except CommitValidationError as exc:
    print(exc)   # type: missing commit type
```

The accepted types are `feat`, `fix`, `docs`, `style`, `refactor`,
`test`, `chore`, `perf`, `ci`, `build` and `revert`
(`is_valid_commit_type` checks one). `validate_with_warnings()` returns a
`ValidationResult` with `is_valid`, `errors` and `warnings`; a subject
line longer than 100 characters gives a warning, not an error.

## Configuration

```python
from gitsage.config import ConfigManager

manager = ConfigManager("settings/config.yaml")
manager.init()                         # writes defaults, file mode 0600
manager.set("provider.model", "gpt-4o")
manager.get("provider.model")          # "gpt-4o"
config = manager.load()                # a Config dataclass
config.provider.temperature            # 0.2
```

With no path, `ConfigManager` uses `~/.gitsage/config.yaml`. Values
resolve, from highest priority to lowest, from `set_override` (kept in
memory only), from environment variables such as
`GITSAGE_PROVIDER_NAME`, from the file, and from the defaults (provider
`openai`, model `gpt-4o-mini`, temperature 0.2, 500 tokens). `set`
converts the text it is given to the type of the value it replaces.
Problems are raised as `ConfigError`. `set_path_check_done` and
`acknowledge_security_warning` record first-run flags in the file.

## History

```python
from gitsage.history import HistoryEntry, HistoryManager

history = HistoryManager("history.json", max_entries=1000)
history.save(HistoryEntry(message="feat: add login", provider="openai",
                          model="gpt-4o-mini", committed=True))
recent = history.entries(10)   # newest ten, oldest first; 0 means all
history.clear()
```

`save` fills in a UUID and the current time when they are missing.

## Caching

```python
from gitsage.cache import LRUCache, generate_cache_key

cache = LRUCache(max_entries=100, default_ttl=3600)
key = generate_cache_key(diff_text, "openai", "gpt-4o-mini", prompt)
cache.set(key, "feat: add login")     # ttl in seconds; 0 uses the default
cache.get(key)                        # "feat: add login", or None once expired
len(cache), cache.clean_expired()
```

When full, the least recently used entry is evicted.

## Errors, retries and the circuit breaker

Every `AppError` carries an `ErrorCode`: user errors give exit code 1,
system errors 2, and errors from external services 3. `get_exit_code`
works on any exception and returns 1 for one that is not an `AppError`.
`format_error` and `format_error_verbose` produce terminal text and mask
anything that looks like an `sk-` API key.

```python
from gitsage.retry import RetryConfig, retry
from gitsage.circuit_breaker import CircuitBreaker, CircuitBreakerConfig

breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5, reset_timeout=60))
result = retry(lambda: breaker.execute(call_service),
               RetryConfig(max_attempts=3, initial_delay=1.0, jitter=False))
```

`retry` tries again only when the error is retryable (rate limits,
network errors, timeouts), waits the error's retry-after time when it has
one, and re-raises the last error. A `threading.Event` passed as
`cancel` interrupts a wait with `RetryCancelled`. While the breaker is
open, `execute` raises an `AppError` caused by `CircuitOpenError`
without calling the function.

## What this package does not do

It does not run git: there is nothing here that reads staged changes,
parses diffs, commits, pulls or pushes. It does not talk to any AI
provider, and it has no command-line program; it is a library of the
pieces listed above.