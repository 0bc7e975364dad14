# 梯度下降
# 使用命令行运行 python 00GradientDescent.py --config 00GradientDescentConfig.yaml
# 画图: python 00GradientDescent.py --plot (或在配置文件中设置 plot: true)

import argparse

import numpy as np

from linear_gd import (
    generate_dataset,
    get_oracle,
    load_config,
    optimize,
    plot_fit,
    save_fit,
)


def run(config):
    rng = np.random.default_rng(config["seed"])
    dataset = generate_dataset(config["dataset_size"], config["learning_rate"], rng=rng,
                               out_path=config["dataset_path"])

    # 用自动求导(或解析解)得到代价函数的梯度
    grad_fn = get_oracle(config["oracle"])
    theta = optimize(config["initial_theta"], dataset, config["max_steps"], config["eps"], grad_fn,
                     verbose=config["verbose"])

    print("Result: ({}, {})".format(theta[0], theta[1]))

    if config["result_path"]:
        save_fit(theta, dataset, config["result_path"])
    if config["plot"] or config["plot_path"]:
        plot_fit(dataset, theta, save_path=config["plot_path"], show=config["plot"])
    return theta


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Gradient descent for y = theta_0 + theta_1 * x')
    parser.add_argument('--config', type=str, default=None, help='./00GradientDescentConfig.yaml')
    parser.add_argument('--dataset_size', type=int, default=None, help='')
    parser.add_argument('--learning_rate', type=float, default=None, help='')
    parser.add_argument('--max_steps', type=int, default=None, help='')
    parser.add_argument('--eps', type=float, default=None, help='')
    parser.add_argument('--seed', type=int, default=None, help='')
    parser.add_argument('--oracle', type=str, default=None, help='closed_form, autograd, numerical')
    parser.add_argument('--plot', action='store_true', default=None, help='show the fitted line')
    parser.add_argument('--plot_path', type=str, default=None, help='')
    parser.add_argument('--quiet', dest='verbose', action='store_false', default=None, help='')
    args = parser.parse_args()

    overrides = vars(args)
    config = load_config(overrides.pop('config'), overrides)
    run(config)
