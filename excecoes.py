class ErroCanaControl(Exception):
    """Erro base das operações do CanaControl."""


class NaoAutenticado(ErroCanaControl):
    pass


class PermissaoNegada(ErroCanaControl):
    pass


class AreaNaoEncontrada(ErroCanaControl):
    pass


class DadosInvalidos(ErroCanaControl):
    pass


class OperacaoInvalida(ErroCanaControl):
    pass
