from pokeshelf.clients.pokeapi import PokeApiClient, gather_all, parse_list_page, parse_pokemon

__all__ = [
    "PokeApiClient",
    "gather_all",
    "parse_list_page",
    "parse_pokemon",
]
