_sampler_registry = {}


def register_sampler(name: str):
    def decorator(factory):
        if name in _sampler_registry:
            raise ValueError(f"Sampler '{name}' already registered")
        _sampler_registry[name] = factory
        return factory

    return decorator


def get_sampler(name: str, **params):
    try:
        factory = _sampler_registry[name]
    except KeyError:
        raise ValueError(
            f"No sampler found for '{name}'. Available samplers: {list_samplers()}"
        )
    return factory(**params)


def list_samplers():
    return sorted(_sampler_registry)
