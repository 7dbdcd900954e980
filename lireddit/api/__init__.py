# GraphQL API layer.
#
#   context    : per-request Context (DB sessions, session store, user loader)
#   types      : object types exposed to clients
#   operations : one handler per query/mutation + the name -> handler registry
#   schema     : root types built from the registry, mounted as a FastAPI router
