"""Assistant core — per-sender conversation orchestration.

Pipeline:
  1. identity → dedup → gatekeeper (admission)
  2. session state machine (greeting, menu, routing)
  3. owner chat: VIP escalation / assistant chat: responder

Modules:
  identity     Sender normalization + admin-side validation
  cache        Bounded FIFO sets (message dedup, after-hours markers)
  gatekeeper   Ordered admission predicates (group, self, inactive, whitelist, spam)
  session      SessionState enum + per-identity store with atomic transitions
  memory       Capped per-identity conversation log + needs-context heuristic
  persona      Regular / VIP system prompts and the fixed user-facing texts
  escalation   After-hours window + urgent owner notifications
  notifier     ntfy / Telegram push notifiers
  responder    Prompt assembly + text generator call + fallbacks
  handler      MessageHandler: wires everything behind a per-identity lock
  admin        Atomic administrative actions used by the CLI
"""
from __future__ import annotations
