"""MongoDB-backed entry store.

The store is the only component that reads or writes entry documents. It
validates documents on the way out (`Entry`) and inputs on the way in
(`CreateEntry` / `UpdateEntry`).
"""
