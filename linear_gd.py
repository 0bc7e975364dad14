# 梯度下降拟合线性关系 y = theta_0 + theta_1 * x
# 代价函数的梯度由 torch.autograd 自动求导得到(也可换成解析解或数值差分)

import math
from collections import namedtuple

import numpy as np
import torch
import yaml
import matplotlib.pyplot as plt
from torch.utils.data import Dataset


DEFAULT_CONFIG = {
    "dataset_size": 1000,
    "learning_rate": 1e-2,
    "max_steps": 10000,
    "eps": 1e-6,
    "initial_theta": [0.0, 0.0],
    "seed": None,
    "oracle": "closed_form",
    "dataset_path": "dataset_gd.dat",
    "result_path": "out_gd.dat",
    "plot": False,
    "plot_path": None,
    "verbose": True,
}


class InvalidConfiguration(ValueError):
    pass


class ComputationError(ArithmeticError):
    """The gradient oracle produced a non-finite value.

    `theta` holds the parameters before the failing step, `step` its index.
    """
    def __init__(self, message, step=None, theta=None):
        super(ComputationError, self).__init__(message)
        self.step = step
        self.theta = theta


# 假设函数, theta_0, theta_1 为待学习的参数, x 为输入
def hypothesis(theta_0, theta_1, x):
    return theta_0 + theta_1 * x


# 需要最小化的代价函数(平方误差)
def cost(theta_0, theta_1, x, y):
    f_x = hypothesis(theta_0, theta_1, x)
    return (f_x - y) * (f_x - y)


# 数据集
Sample = namedtuple("Sample", ["x", "y"])


class LinearDataset(Dataset):
    """Fixed, read-only collection of (x, y) samples plus the learning rate."""
    def __init__(self, samples, learning_rate=1e-2):
        samples = tuple(Sample(float(x), float(y)) for x, y in samples)
        if len(samples) < 1:
            raise InvalidConfiguration("dataset must contain at least one sample")
        _check_learning_rate(learning_rate)
        self._samples = samples
        self._learning_rate = float(learning_rate)

    @classmethod
    def from_pairs(cls, pairs, learning_rate=1e-2):
        return cls(pairs, learning_rate)

    @property
    def samples(self):
        return self._samples

    @property
    def learning_rate(self):
        return self._learning_rate

    @property
    def size(self):
        return len(self._samples)

    @property
    def x(self):
        return np.array([s.x for s in self._samples])

    @property
    def y(self):
        return np.array([s.y for s in self._samples])

    def __getitem__(self, item):
        return self._samples[item]

    def __len__(self):
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)


def _check_learning_rate(learning_rate):
    try:
        lr = float(learning_rate)
    except (TypeError, ValueError):
        raise InvalidConfiguration("learning_rate must be a number, got {!r}".format(learning_rate))
    if not math.isfinite(lr) or lr <= 0:
        raise InvalidConfiguration("learning_rate must be positive and finite, got {}".format(lr))


def generate_dataset(size=1000, learning_rate=1e-2, rng=None, out_path=None):
    """
    随机生成数据: x 属于 [0, 3), 截距 t0 属于 [9, 10)(每个样本重新抽取), 斜率 t1 = 2
    size: 样本数量
    rng: numpy.random.Generator, 传入固定种子的生成器即可复现
    out_path: 若给出, 把 (x, y) 写入该文件供画图使用
    """
    if size < 1:
        raise InvalidConfiguration("dataset size must be >= 1, got {}".format(size))
    if rng is None:
        rng = np.random.default_rng()

    samples = []
    for _ in range(size):
        # 两位小数精度的随机数据
        rand_x = 3 * int(rng.integers(0, 100)) / 100
        t0 = 9 + int(rng.integers(0, 100)) / 100
        t1 = 2
        rand_y = hypothesis(t0, t1, rand_x)
        samples.append((rand_x, rand_y))

    dataset = LinearDataset(samples, learning_rate)
    if out_path is not None:
        save_dataset(dataset, out_path)
    return dataset


# 梯度计算(gradient oracle)
# 每个 oracle 都接收 (theta_0, theta_1, x, y), 返回代价函数对这四个量的偏导
def closed_form_gradient(theta_0, theta_1, x, y):
    e = theta_0 + theta_1 * x - y
    return 2 * e, 2 * e * x, 2 * e * theta_1, -2 * e


def gradient(fn):
    """Return a callable computing every partial derivative of `fn` with torch.autograd."""
    def execute(*args):
        inputs = [torch.tensor(float(a), dtype=torch.float64, requires_grad=True) for a in args]
        out = fn(*inputs)
        grads = torch.autograd.grad(out, inputs, allow_unused=True)
        return tuple(0.0 if g is None else g.item() for g in grads)
    return execute


def numerical_gradient(fn, h=1e-6):
    # 中心差分
    def execute(*args):
        args = [float(a) for a in args]
        partials = []
        for i in range(len(args)):
            plus, minus = list(args), list(args)
            plus[i] += h
            minus[i] -= h
            partials.append((fn(*plus) - fn(*minus)) / (2 * h))
        return tuple(partials)
    return execute


def get_oracle(name: str):
    if name == "closed_form":
        return closed_form_gradient
    elif name == "autograd":
        return gradient(cost)
    elif name == "numerical":
        return numerical_gradient(cost)
    else:
        raise InvalidConfiguration("Choose oracle from: closed_form, autograd, numerical")


# 梯度下降
def perform_step(theta, dataset, grad_fn, step=0):
    """
    对整个数据集做一次批量梯度下降, 原地更新 theta
    theta: [theta_0, theta_1]
    grad_fn: gradient oracle
    """
    J_theta = np.zeros(4)
    result = [0.0, 0.0]
    for sample in dataset:
        J_theta[:] = 0
        J_theta[:] = grad_fn(theta[0], theta[1], sample.x, sample.y)
        if not np.all(np.isfinite(J_theta)):
            raise ComputationError(
                "non-finite gradient at step {} for sample {}".format(step, tuple(sample)),
                step=step,
                theta=list(theta),
            )
        result[0] += float(J_theta[0])
        result[1] += float(J_theta[1])

    theta[0] -= dataset.learning_rate * result[0] / (2 * dataset.size)
    theta[1] -= dataset.learning_rate * result[1] / (2 * dataset.size)
    return theta


def print_progress(step, theta_0, theta_1):
    print("Steps #{} Theta 0: {} Theta 1: {}".format(step, theta_0, theta_1))


def optimize(theta, dataset, max_steps, eps, grad_fn, callback=None, verbose=True):
    """
    最小化代价函数
    theta: 初始参数 [theta_0, theta_1], 不会被修改
    max_steps: 最大步数, 未收敛时共执行 max_steps + 1 步
    eps: 相邻两步每个参数的变化都不超过 eps 即视为收敛
    callback: 每步调用 callback(step, theta_0, theta_1)
    """
    if len(theta) != 2:
        raise InvalidConfiguration("theta must have exactly 2 elements, got {}".format(len(theta)))
    max_steps = _as_int("max_steps", max_steps, minimum=0)
    if not isinstance(eps, (int, float)) or not math.isfinite(eps) or eps < 0:
        raise InvalidConfiguration("eps must be non-negative and finite, got {}".format(eps))
    if callback is None and verbose:
        callback = print_progress

    theta = [float(t) for t in theta]
    diff = list(theta)
    has_converged = False
    current_step = 0

    while True:
        perform_step(theta, dataset, grad_fn, current_step)
        if callback is not None:
            callback(current_step, theta[0], theta[1])

        # 与本步开始前的参数比较
        has_converged = abs(diff[0] - theta[0]) <= eps and abs(diff[1] - theta[1]) <= eps
        diff = list(theta)

        current_step += 1
        if has_converged or current_step > max_steps:
            break

    return theta


def predict(theta, xs):
    return [hypothesis(theta[0], theta[1], x) for x in xs]


def mean_squared_error(theta, dataset):
    return float(np.mean([cost(theta[0], theta[1], s.x, s.y) for s in dataset]))


# 保存 / 读取画图数据
def save_pairs(path, xs, ys):
    np.savetxt(path, np.column_stack([xs, ys]), fmt="%g", delimiter="\t")


def load_pairs(path):
    data = np.loadtxt(path, delimiter="\t", ndmin=2)
    return data[:, 0], data[:, 1]


def save_dataset(dataset, path):
    save_pairs(path, dataset.x, dataset.y)


def save_fit(theta, dataset, path):
    save_pairs(path, dataset.x, predict(theta, dataset.x))


def plot_fit(dataset, theta, save_path=None, show=False):
    fig, ax = plt.subplots()
    ax.scatter(dataset.x, dataset.y, s=8, label="data")
    x_line = np.linspace(dataset.x.min(), dataset.x.max(), 100)
    ax.plot(x_line, predict(theta, x_line), "r", label="fit")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title("$y = {:.3f} + {:.3f}x$".format(theta[0], theta[1]))
    ax.legend()
    if save_path is not None:
        fig.savefig(save_path)
    if show:
        plt.show()
    plt.close(fig)
    return fig


# 配置
def load_config(path=None, overrides=None):
    """Merge a YAML config file and explicit overrides over DEFAULT_CONFIG."""
    config = dict(DEFAULT_CONFIG)
    if path is not None:
        with open(path, "r") as stream:
            loaded = yaml.safe_load(stream) or {}
        if not isinstance(loaded, dict):
            raise InvalidConfiguration("config file {} must contain a mapping".format(path))
        config.update(loaded)
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(config) - set(DEFAULT_CONFIG))
    if unknown:
        raise InvalidConfiguration("unknown config keys: {}".format(", ".join(unknown)))

    config["dataset_size"] = _as_int("dataset_size", config["dataset_size"], minimum=1)
    _check_learning_rate(config["learning_rate"])
    config["learning_rate"] = float(config["learning_rate"])
    config["max_steps"] = _as_int("max_steps", config["max_steps"], minimum=0)
    try:
        config["eps"] = float(config["eps"])
        config["initial_theta"] = [float(t) for t in config["initial_theta"]]
    except (TypeError, ValueError):
        raise InvalidConfiguration("eps and initial_theta must be numeric")
    if not math.isfinite(config["eps"]) or config["eps"] < 0:
        raise InvalidConfiguration("eps must be non-negative and finite")
    if len(config["initial_theta"]) != 2:
        raise InvalidConfiguration("initial_theta must have exactly 2 elements")
    if config["seed"] is not None:
        config["seed"] = _as_int("seed", config["seed"], minimum=0)
    get_oracle(config["oracle"])
    return config


def _as_int(name, value, minimum=0):
    if isinstance(value, bool):
        raise InvalidConfiguration("{} must be an integer, got {!r}".format(name, value))
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidConfiguration("{} must be an integer, got {!r}".format(name, value))
    if number != value and str(number) != str(value):
        raise InvalidConfiguration("{} must be an integer, got {!r}".format(name, value))
    if number < minimum:
        raise InvalidConfiguration("{} must be >= {}, got {}".format(name, minimum, number))
    return number
