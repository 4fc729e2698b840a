"""Recipe explorer domain. Centres around asking a remote catalog resiliently.

What is actually hard here?

- The catalog sits behind an api that can be slow, flaky or both.
- So there is a cache in front of it, and a few ways of asking:
  retry, fan out, race a timer.
- Prompting, formatting and favorites are someone else's problem.

The catalog client and the clock should be fakeable.
"""
