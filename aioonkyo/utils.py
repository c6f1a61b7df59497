class ValueRange(object):
    """Some command values are defined as a range of possible
    values, such as from 0 to 100. We use a custom type to represent
    this.
    A list is not hashable and a generator can be exhausted after
    use, so the range is kept as a tuple. Both ends are included.
    """

    def __init__(self, start, end):
        self.start = start
        self.end = end

        self._range = tuple(range(start, end + 1))

    def __contains__(self, value):
        return value in self._range

    def __repr__(self):
        return "ValueRange({}, {})".format(self.start, self.end)
