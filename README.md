# syncprims

A few thread-safe building blocks — a timer table, a multi-producer queue and
a message bus — and two small programs: a static HTTP server and a parallel
word counter.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Library

### Timers — `syncprims.lftimer`

`Timers(max_timers=8192)` manages a fixed table of timers driven by a tick
counter that you advance yourself. A callback is called as
`callback(timer, expiration, arg)`.

```python
from syncprims.lftimer import Timers

timers = Timers(8192)
t = timers.alloc(lambda timer, expiration, arg: print(timer, expiration), None)
timers.set(t, 1)      # False if the timer is already active
timers.advance(1)     # smaller ticks than the current one are ignored
timers.expire()       # fires every timer due at the current tick, returns how many
timers.free(t)
```

- `alloc` returns `None` when no timer is free.
- `reset` moves the expiration of an active timer and `cancel` deactivates
  it; both return `False` for a timer that has already expired or been
  cancelled.
- `tick` is the current tick.
- An invalid timer, tick or expiration, or freeing an active timer, raises
  `TimerError`.

### Multi-producer queue — `syncprims.mpsc`

`MPSCQueue` is an unbounded FIFO queue. Any thread may `push`; one thread at a
time may use `has_front`, `front`, `pop` and `clear`.

```python
from syncprims.mpsc import MPSCQueue

q = MPSCQueue()
q.push(1)
q.push(2)
q.front()     # 1
q.pop()       # 1
q.clear()
q.has_front() # False
```

`front` and `pop` raise `IndexError` on an empty queue.

### Message bus — `syncprims.mbus`

```python
from syncprims.mbus import Bus

bus = Bus(0)                                   # 0 means 128 client slots
bus.register(1, lambda ctx, msg: print(ctx, msg), "client one")
bus.send(1, "hello")                           # to client 1
bus.send(0, "to everyone", broadcast=True)     # every registered client; id ignored
bus.unregister(1)
```

`register`, `send` and `unregister` return `True` on success and `False` for
an out-of-range id, a taken id (on `register`) or an unregistered client.
`unregister` waits until running deliveries to that client have finished, so
its callback is never called afterwards. `n_clients` is the number of slots.

## Programs

### HTTP server — `syncprims.httpd`

```
syncprims-httpd [--host HOST] [--port PORT] [--root DIR] [--workers N]
```

Serves `GET` and `HEAD` for `/` and `/index.html` with the `index.html` from
the document root (default: `resources` in the current directory), on port
9000 by default. Any other path gets `404 Not Found`; a malformed request
line gets `400 Bad Request`. Request headers are read but ignored. HTTP/1.1
connections are kept alive after a successful response; HTTP/1.0 connections
are closed. Each connection gets a receive timeout of ten seconds plus one
second for every 50 connections waiting in the queue.

The pieces are usable on their own: `parse_request`, `response_head`,
`receive_request`, `handle_connection`, `receive_timeout` and `serve`, with
the `Status`, `Method`, `ContentType`, `HttpRequest` and `RequestError` types.

### Word count — `syncprims.wordcount`

```
syncprims-wordcount FILE THREAD_NUMBER
```

Counts the words (runs of ASCII letters, case-insensitive) of a file with the
given number of worker threads, then prints each word with its count, a
summary line and the elapsed time. From Python, `count_words(data, n_threads)`
returns a `WordCache` and `format_report(cache)` renders it;
`extract_words`, `split_slices`, `bucket_count` and `word_code` expose the
steps.

## What is not included

The package has no bounded ring buffer, no spin or queue lock, no blocking
multi-consumer queue and no interactive shell. It offers only the modules
described above.