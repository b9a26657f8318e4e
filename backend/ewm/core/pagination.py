"""
`from`/`size` paging used by every list endpoint.

`from` is an element offset; it is rounded down to a whole page of `size`
elements, so from=15&size=10 returns the second page.
"""

from sqlalchemy import Select

DEFAULT_PAGE_SIZE = 10


def paginate(query: Select, from_: int = 0, size: int = DEFAULT_PAGE_SIZE) -> Select:
    page = from_ // size
    return query.offset(page * size).limit(size)
